"""
Client library for the Rackspace cloud API.

`Rackspace` is the usual entry point; `start_wait` and `WaitOptions` poll any
resource until it reaches a desired state.
"""

from .catalog import EndpointSelector, ServiceCatalogEntry, ServiceEndpoint, Services, resolve_endpoint
from .client import ApiResponse, Client, ClientOptions, Credentials, RequestSpec
from .errors import (
    ArgumentError,
    AuthorizationError,
    EndpointNotFound,
    MissingArgument,
    NotFoundError,
    RaxcloudError,
    RefreshFailedError,
    RequestError,
    WaitTimeoutError,
)
from .rackspace import Rackspace, RackspaceOptions
from .session import Session
from .waiter import PollHandle, WaitOptions, WaitState, cancel, start_wait, wait_for

__all__ = [
    "ApiResponse",
    "ArgumentError",
    "AuthorizationError",
    "Client",
    "ClientOptions",
    "Credentials",
    "EndpointNotFound",
    "EndpointSelector",
    "MissingArgument",
    "NotFoundError",
    "PollHandle",
    "Rackspace",
    "RackspaceOptions",
    "RaxcloudError",
    "RefreshFailedError",
    "RequestError",
    "RequestSpec",
    "ServiceCatalogEntry",
    "ServiceEndpoint",
    "Services",
    "Session",
    "WaitOptions",
    "WaitState",
    "WaitTimeoutError",
    "cancel",
    "resolve_endpoint",
    "start_wait",
    "wait_for",
]
