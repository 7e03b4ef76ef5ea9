"""Poll a resource until it reaches a desired state.

Every mutating call that completes asynchronously on the server side (create
server, create volume, resize, attach volume, ...) hands the returned resource
to :func:`start_wait`. The waiter re-fetches the resource on a fixed interval
and checks a predicate until it holds, the deadline passes, or the caller
cancels.

Refresh failures are transient: the tick is skipped and polling continues.
Only the deadline ends a wait with an error, as ``WaitTimeoutError``, unless a
``max_consecutive_failures`` limit is configured.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
import logging
import threading
import time
from typing import Any, Callable, Mapping, Protocol, Union
import uuid

from raxcloud.errors import ArgumentError, RaxcloudError, RefreshFailedError, WaitTimeoutError
from raxcloud.scheduler import CancelToken, Scheduler, ThreadingScheduler


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5000
DEFAULT_MAX_WAIT_S = 30 * 60


class Refreshable(Protocol):
    """Anything the waiter can poll."""

    def refresh(self) -> Any: ...


WaitCallback = Callable[[Union[RaxcloudError, None], Any], None]


class WaitState(str, Enum):
    """Lifecycle of one wait."""

    IDLE = "idle"
    POLLING = "polling"
    SATISFIED = "satisfied"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self not in (WaitState.IDLE, WaitState.POLLING)


@dataclass(frozen=True)
class AttributeMatch:
    """Satisfied when every attribute equals the resource field of the same name.

    Attributes:
        attributes: Expected field values.
        case_insensitive: Compare strings case-folded.
    """

    attributes: Mapping[str, Any]
    case_insensitive: bool = False

    def __call__(self, resource: Any) -> bool:
        for key, expected in self.attributes.items():
            actual = getattr(resource, key, None)
            if self.case_insensitive and isinstance(expected, str) and isinstance(actual, str):
                if expected.casefold() != actual.casefold():
                    return False
            elif expected != actual:
                return False
        return True


@dataclass(frozen=True)
class CustomMatch:
    """Satisfied when ``matcher(resource)`` is truthy."""

    matcher: Callable[[Any], bool]

    def __call__(self, resource: Any) -> bool:
        return bool(self.matcher(resource))


Predicate = Union[AttributeMatch, CustomMatch]


@dataclass(frozen=True)
class WaitOptions:
    """Options of one wait.

    Exactly one of ``attributes`` and ``matcher`` must be set.

    Attributes:
        attributes: Field values the resource must reach.
        matcher: Predicate called with the refreshed resource.
        interval_ms: Polling interval in milliseconds. Must be positive.
        max_wait_s: Deadline in seconds, 30 minutes by default.
        on_tick: Called without arguments after every successful refresh.
        on_finish: Called without arguments when the wait is satisfied,
            times out or gives up. Not called on cancel.
        case_insensitive: Case-fold string comparisons in attribute mode.
        max_consecutive_failures: End the wait with ``RefreshFailedError``
            after this many refresh failures in a row. ``None`` retries until
            the deadline.
    """

    attributes: Mapping[str, Any] | None = None
    matcher: Callable[[Any], bool] | None = None
    interval_ms: int = DEFAULT_INTERVAL_MS
    max_wait_s: float | None = DEFAULT_MAX_WAIT_S
    on_tick: Callable[[], None] | None = None
    on_finish: Callable[[], None] | None = None
    case_insensitive: bool = False
    max_consecutive_failures: int | None = None

    def predicate(self) -> Predicate:
        """Resolve the predicate variant.

        Raises:
            ArgumentError: Neither or both of ``attributes`` and ``matcher``.
        """
        if (self.attributes is None) == (self.matcher is None):
            raise ArgumentError("exactly one of attributes or matcher is required")
        if self.matcher is not None:
            if not callable(self.matcher):
                raise ArgumentError("matcher must be callable")
            return CustomMatch(self.matcher)
        if not self.attributes:
            raise ArgumentError("attributes must not be empty")
        return AttributeMatch(dict(self.attributes), case_insensitive=self.case_insensitive)


class PollHandle:
    """Running wait on one resource.

    Returned by :func:`start_wait`; never built directly.
    """

    def __init__(
        self,
        resource: Refreshable,
        predicate: Predicate,
        options: WaitOptions,
        callback: WaitCallback | None,
        scheduler: Scheduler,
    ) -> None:
        self.resource = resource
        self.predicate = predicate
        self.options = options
        self.task_id = uuid.uuid4().hex[:8]
        self._callback = callback
        self._scheduler = scheduler
        self._future: Future = Future()
        self._state = WaitState.IDLE
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._tick_token: CancelToken | None = None
        self._deadline_token: CancelToken | None = None
        self._failures = 0
        self._ticks = 0
        self._started_at = 0.0
        self._max_wait_s = options.max_wait_s or DEFAULT_MAX_WAIT_S

    @property
    def state(self) -> WaitState:
        return self._state

    @property
    def ticks(self) -> int:
        """Number of successful refreshes so far."""
        return self._ticks

    def done(self) -> bool:
        return self._state.terminal

    def _start(self) -> None:
        with self._state_lock:
            self._state = WaitState.POLLING
        self._started_at = time.monotonic()
        interval_s = self.options.interval_ms / 1000
        self._tick_token = self._scheduler.schedule_repeating(interval_s, self._tick)
        self._deadline_token = self._scheduler.schedule_once(self._max_wait_s, self._expire)
        logger.info(
            "task_id=%s target=wait.start resource=%s interval_ms=%s max_wait_s=%s",
            self.task_id,
            _describe(self.resource),
            self.options.interval_ms,
            self._max_wait_s,
        )

    def _stop_timers(self) -> None:
        for token in (self._tick_token, self._deadline_token):
            if token is not None:
                token.cancel()

    def _transition(self, state: WaitState) -> bool:
        """Move to a terminal state once.

        Returns:
            bool: False when another transition already happened.
        """
        with self._state_lock:
            if self._state.terminal:
                return False
            self._state = state
        self._stop_timers()
        return True

    def _tick(self) -> None:
        if self._state.terminal:
            return
        # a tick that finds the previous one still running is skipped
        if not self._tick_lock.acquire(blocking=False):
            return
        try:
            self._poll_once()
        finally:
            self._tick_lock.release()

    def _poll_once(self) -> None:
        try:
            self.resource.refresh()
        except RaxcloudError as exc:
            if self._state.terminal:
                return
            self._failures += 1
            logger.warning(
                "task_id=%s target=wait.refresh result=skipped failures=%s error=%s",
                self.task_id,
                self._failures,
                exc,
            )
            limit = self.options.max_consecutive_failures
            if limit is not None and self._failures >= limit:
                error = RefreshFailedError(
                    f"refresh failed {self._failures} times in a row for {_describe(self.resource)}"
                )
                error.__cause__ = exc
                if self._transition(WaitState.ERROR):
                    self._complete(error)
            return

        if self._state.terminal:
            return
        self._failures = 0
        self._ticks += 1
        if self.options.on_tick is not None:
            self.options.on_tick()
        # on_tick may have ended the wait
        if self._state.terminal:
            return
        if self.predicate(self.resource) and self._transition(WaitState.SATISFIED):
            self._complete(None)

    def _expire(self) -> None:
        if not self._transition(WaitState.TIMED_OUT):
            return
        error = WaitTimeoutError(
            f"max wait of {self._max_wait_s}s exceeded for {_describe(self.resource)}"
        )
        self._complete(error)

    def _complete(self, error: RaxcloudError | None) -> None:
        duration_ms = int((time.monotonic() - self._started_at) * 1000)
        logger.info(
            "task_id=%s target=wait.finish result=%s ticks=%s duration_ms=%s",
            self.task_id,
            self._state.value,
            self._ticks,
            duration_ms,
        )
        try:
            if self.options.on_finish is not None:
                self.options.on_finish()
            if self._callback is not None:
                self._callback(error, self.resource)
        finally:
            if error is None:
                self._future.set_result(self.resource)
            else:
                self._future.set_exception(error)

    def cancel(self) -> bool:
        """Abandon the wait silently.

        No further refresh, ``on_finish`` or completion callback happens. A
        refresh already in flight finishes but its result is ignored.

        Returns:
            bool: False when the wait had already ended.
        """
        if not self._transition(WaitState.CANCELLED):
            return False
        self._future.cancel()
        logger.info("task_id=%s target=wait.cancel result=cancelled", self.task_id)
        return True

    def result(self, timeout: float | None = None) -> Any:
        """Block until the wait ends.

        Args:
            timeout: Seconds to block. ``None`` blocks until the wait ends.

        Returns:
            Any: The satisfied resource.

        Raises:
            WaitTimeoutError: The deadline passed first.
            RefreshFailedError: The consecutive failure limit was hit.
            concurrent.futures.CancelledError: The wait was cancelled.
            concurrent.futures.TimeoutError: ``timeout`` elapsed first.
        """
        return self._future.result(timeout=timeout)

    def add_done_callback(self, fn: Callable[[Future], None]) -> None:
        self._future.add_done_callback(fn)


def _describe(resource: Any) -> str:
    return f"{resource.__class__.__name__}({getattr(resource, 'id', None)})"


_default_scheduler: Scheduler | None = None


def default_scheduler() -> Scheduler:
    global _default_scheduler
    if _default_scheduler is None:
        _default_scheduler = ThreadingScheduler()
    return _default_scheduler


def start_wait(
    resource: Refreshable,
    options: WaitOptions,
    callback: WaitCallback | None = None,
    *,
    scheduler: Scheduler | None = None,
) -> PollHandle:
    """Start polling ``resource`` until ``options`` is satisfied.

    Returns immediately. Completion is reported once, through ``callback`` as
    ``(None, resource)`` or ``(WaitTimeoutError, resource)``, and through the
    handle's ``result()``.

    Args:
        resource: Object with a ``refresh()`` method updating it in place.
        options: Predicate, interval and deadline.
        callback: Completion callback.
        scheduler: Timer source. Defaults to a shared ``ThreadingScheduler``.

    Returns:
        PollHandle: Handle used to cancel or await the wait.

    Raises:
        ArgumentError: Invalid resource or options.
    """
    if resource is None or not callable(getattr(resource, "refresh", None)):
        raise ArgumentError("resource with a refresh() method is required")
    if options is None:
        raise ArgumentError("wait options are required")
    if not options.interval_ms or options.interval_ms <= 0:
        raise ArgumentError("interval_ms must be positive")
    if options.max_wait_s is not None and options.max_wait_s <= 0:
        raise ArgumentError("max_wait_s must be positive")
    if options.max_consecutive_failures is not None and options.max_consecutive_failures <= 0:
        raise ArgumentError("max_consecutive_failures must be positive")

    predicate = options.predicate()
    handle = PollHandle(resource, predicate, options, callback, scheduler or default_scheduler())
    handle._start()
    return handle


def cancel(handle: PollHandle) -> bool:
    """Cancel a wait. See :meth:`PollHandle.cancel`."""
    if handle is None:
        raise ArgumentError("poll handle is required")
    return handle.cancel()


def wait_for(
    resource: Refreshable,
    options: WaitOptions,
    *,
    scheduler: Scheduler | None = None,
) -> Any:
    """Start a wait and block until it ends.

    Returns:
        Any: The satisfied resource.

    Raises:
        WaitTimeoutError: The deadline passed first.
    """
    return start_wait(resource, options, scheduler=scheduler).result()
