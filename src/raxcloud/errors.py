"""raxcloud exception taxonomy."""

from __future__ import annotations

import httpx


class RaxcloudError(Exception):
    """Base error for raxcloud."""


class ArgumentError(RaxcloudError):
    """Malformed or missing input to the resolver, dispatcher or waiter."""


class MissingArgument(ArgumentError):
    """A required argument is empty or absent."""


class EndpointNotFound(RaxcloudError):
    """The service catalog has no URL for the requested service and region."""

    def __init__(self, service_type: str, service_name: str, region: str) -> None:
        """Initialize the error.

        Args:
            service_type: Catalog service type.
            service_name: Catalog service name.
            region: Region that was requested.
        """
        super().__init__(
            f"no endpoint for service type={service_type} name={service_name} region={region}"
        )
        self.service_type = service_type
        self.service_name = service_name
        self.region = region


class AuthorizationError(RaxcloudError):
    """Credentials or token rejected."""


class RequestError(RaxcloudError):
    """A dispatched request failed in transport or returned an unexpected status."""

    def __init__(self, message: str, *, status_code: int | None = None, body: object = None) -> None:
        """Initialize the error.

        Args:
            message: Error message.
            status_code: HTTP status, ``None`` for transport failures.
            body: Decoded response body when one was received.
        """
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotFoundError(RequestError):
    """The requested resource does not exist."""


class WaitTimeoutError(RaxcloudError):
    """A wait reached ``max_wait_s`` before its predicate was satisfied."""


class RefreshFailedError(RaxcloudError):
    """A wait gave up after too many consecutive refresh failures."""


def map_http_error(action: str, status_code: int, body: object = None) -> RaxcloudError:
    """Map a non-2xx status to a raxcloud exception.

    Args:
        action: Action label, usually ``"METHOD uri"``.
        status_code: HTTP status code.
        body: Decoded response body.

    Returns:
        RaxcloudError: Mapped exception, not raised.
    """
    if status_code in {401, 403}:
        return AuthorizationError(f"{action} unauthorized status={status_code}")
    if status_code == 404:
        return NotFoundError(f"{action} not found", status_code=status_code, body=body)
    return RequestError(f"{action} failed status={status_code}", status_code=status_code, body=body)


def map_transport_error(action: str, exc: httpx.HTTPError) -> RequestError:
    # httpx.TimeoutException is a TransportError, both end up here
    return RequestError(f"{action} transport error {exc.__class__.__name__}")
