"""Timer scheduling used by the waiter."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from typing import Callable, Protocol


logger = logging.getLogger(__name__)


class CancelToken(Protocol):
    """Handle of a scheduled timer."""

    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Schedules repeating and one-shot timers.

    Delays are in seconds. A repeating timer must never run ``fn`` concurrently
    with itself.
    """

    def schedule_repeating(self, interval_s: float, fn: Callable[[], None]) -> CancelToken: ...

    def schedule_once(self, delay_s: float, fn: Callable[[], None]) -> CancelToken: ...


class _ThreadToken:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._timer: threading.Timer | None = None

    def cancel(self) -> None:
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ThreadingScheduler:
    """Scheduler backed by daemon threads.

    Each repeating timer owns one thread that sleeps ``interval_s`` between
    runs, so runs of the same timer are strictly sequential and the next
    interval starts only after the previous run returned.
    """

    def __init__(self, name: str = "raxcloud-wait") -> None:
        self.name = name

    def schedule_repeating(self, interval_s: float, fn: Callable[[], None]) -> _ThreadToken:
        token = _ThreadToken()

        def loop() -> None:
            while not token._event.wait(interval_s):
                try:
                    fn()
                except Exception:
                    logger.exception("[scheduler] repeating timer %s raised", self.name)

        thread = threading.Thread(target=loop, name=f"{self.name}-tick", daemon=True)
        thread.start()
        return token

    def schedule_once(self, delay_s: float, fn: Callable[[], None]) -> _ThreadToken:
        token = _ThreadToken()

        def fire() -> None:
            if not token.cancelled:
                fn()

        timer = threading.Timer(delay_s, fire)
        timer.name = f"{self.name}-deadline"
        timer.daemon = True
        token._timer = timer
        timer.start()
        return token


class _VirtualTimer:
    def __init__(self, due: float, interval_s: float | None, fn: Callable[[], None]) -> None:
        self.due = due
        self.interval_s = interval_s
        self.fn = fn
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler:
    """Deterministic scheduler driven by a virtual clock.

    Nothing fires until ``advance`` is called. Timers due at the same instant
    fire in the order they were scheduled.

    Example:
        sched = VirtualScheduler()
        handle = start_wait(server, options, scheduler=sched)
        sched.advance(0.15)
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = itertools.count()
        self._queue: list[tuple[float, int, _VirtualTimer]] = []

    def _push(self, timer: _VirtualTimer) -> None:
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))

    def schedule_repeating(self, interval_s: float, fn: Callable[[], None]) -> _VirtualTimer:
        timer = _VirtualTimer(round(self.now + interval_s, 9), interval_s, fn)
        self._push(timer)
        return timer

    def schedule_once(self, delay_s: float, fn: Callable[[], None]) -> _VirtualTimer:
        timer = _VirtualTimer(round(self.now + delay_s, 9), None, fn)
        self._push(timer)
        return timer

    def pending(self) -> int:
        """Count timers that can still fire."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that comes due.

        Args:
            seconds: Amount of virtual time to elapse.
        """
        # round to avoid float drift turning 3 * 0.05 into 0.15000000000000002
        target = round(self.now + seconds, 9)
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = due
            timer.fn()
            if timer.interval_s is not None and not timer.cancelled:
                timer.due = round(due + timer.interval_s, 9)
                self._push(timer)
        self.now = target
