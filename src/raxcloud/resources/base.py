"""Shared plumbing of resource projections and service wrappers."""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Mapping

from raxcloud.catalog import Service
from raxcloud.client import ApiResponse, Client, RequestSpec
from raxcloud.errors import ArgumentError, RequestError
from raxcloud.scheduler import Scheduler
from raxcloud.waiter import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_MAX_WAIT_S,
    PollHandle,
    WaitCallback,
    WaitOptions,
    start_wait,
)


class ServiceResource:
    """Base of per-service wrappers such as ``ServersResource``."""

    service: ClassVar[Service]

    def __init__(self, client: Client, scheduler: Scheduler | None = None) -> None:
        """Initialize the wrapper.

        Args:
            client: Authenticated client.
            scheduler: Timer source for waits. ``None`` uses the shared
                threading scheduler.
        """
        self._c = client
        self.scheduler = scheduler

    def _request(
        self,
        uri: str,
        method: str = "GET",
        *,
        body: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        region: str | None = None,
    ) -> ApiResponse:
        return self._c.authorized_request(
            RequestSpec(
                uri=uri,
                method=method,
                body=body,
                query=query,
                endpoint=self.service,
                region=region,
            )
        )

    @staticmethod
    def _expect_key(response: ApiResponse, key: str, action: str) -> Any:
        """Pull ``key`` out of a response body.

        Raises:
            RequestError: The body has no such key.
        """
        body = response.body if isinstance(response.body, dict) else {}
        if key not in body or body[key] is None:
            raise RequestError(
                f"{action} response has no {key}",
                status_code=response.status_code,
                body=response.body,
            )
        return body[key]

    def _wait(
        self,
        resource: "Resource",
        *,
        attributes: Mapping[str, Any],
        interval_ms: int,
        max_wait_s: float | None,
        on_tick: Callable[[], None] | None,
        on_finish: Callable[[], None] | None,
    ) -> Any:
        handle = resource.set_wait(
            attributes=attributes,
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=on_tick,
            on_finish=on_finish,
        )
        return handle.result()


def pick(base: Mapping[str, Any] | None, *keys: str) -> dict[str, Any]:
    """Keep only the listed keys that have a value."""
    if not base:
        return {}
    return {key: base[key] for key in keys if key in base and base[key] is not None}


def ref_id(value: Any) -> Any:
    """Id of a projection, or the value itself when it is already an id."""
    return value.id if isinstance(value, Resource) else value


class Resource:
    """Mutable projection of one remote resource.

    Subclasses implement ``_set_properties`` and ``_fetch``. ``refresh``
    reloads the remote state in place, which is what waits poll.
    """

    # some services report status in mixed case
    case_insensitive_match: ClassVar[bool] = False

    def __init__(self, service: ServiceResource, details: Mapping[str, Any]) -> None:
        if not details:
            raise ArgumentError(
                f"{self.__class__.__name__} must be constructed with at least basic details"
            )
        self._service = service
        self.details: dict[str, Any] = {}
        self.id: Any = None
        self._set_properties(details)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        self.details = dict(details)
        self.id = details.get("id")

    def _fetch(self) -> Mapping[str, Any]:
        raise NotImplementedError

    def refresh(self) -> "Resource":
        """Reload remote state into this instance.

        Returns:
            Resource: ``self``.
        """
        self._set_properties(self._fetch())
        return self

    def set_wait(
        self,
        attributes: Mapping[str, Any] | None = None,
        matcher: Callable[[Any], bool] | None = None,
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        on_tick: Callable[[], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        callback: WaitCallback | None = None,
        max_consecutive_failures: int | None = None,
    ) -> PollHandle:
        """Poll this resource until ``attributes`` match or ``matcher`` holds.

        Args:
            attributes: Field values to wait for, e.g. ``{"status": "ACTIVE"}``.
            matcher: Predicate called with this resource after each refresh.
            interval_ms: Polling interval.
            max_wait_s: Deadline in seconds.
            on_tick: Progress hook called after each successful refresh.
            on_finish: Called when the wait ends other than by cancel.
            callback: Completion callback ``(error, resource)``.
            max_consecutive_failures: Optional refresh failure limit.

        Returns:
            PollHandle: Running wait.
        """
        options = WaitOptions(
            attributes=attributes,
            matcher=matcher,
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=on_tick,
            on_finish=on_finish,
            case_insensitive=self.case_insensitive_match,
            max_consecutive_failures=max_consecutive_failures,
        )
        return start_wait(self, options, callback, scheduler=self._service.scheduler)

    @staticmethod
    def clear_wait(handle: PollHandle) -> bool:
        """Cancel a wait started with ``set_wait``."""
        return handle.cancel()
