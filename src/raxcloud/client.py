#!/usr/bin/env python3

import logging
import time
import uuid
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Dict, Optional, Type

import httpx

from .catalog import EndpointSelector, Service, Services, resolve_endpoint
from .errors import (
    ArgumentError,
    AuthorizationError,
    EndpointNotFound,
    MissingArgument,
    map_http_error,
    map_transport_error,
)
from .session import Session

logger = logging.getLogger(__name__)

US_AUTH_URL = "https://identity.api.rackspacecloud.com/v2.0"
UK_AUTH_URL = "https://lon.identity.api.rackspacecloud.com/v2.0"


@dataclass
class ClientOptions:
    """
    Client runtime options.

    ``auth_url`` wins over ``location`` when both are set.
    """

    location: str = "US"
    auth_url: Optional[str] = None
    timeout_ms: int = 60_000
    user_agent: str = "raxcloud"

    def resolved_auth_url(self) -> str:
        if self.auth_url:
            return self.auth_url.rstrip("/")
        if self.location.upper() == "UK":
            return UK_AUTH_URL
        return US_AUTH_URL


@dataclass(frozen=True)
class Credentials:
    """
    API key credentials.
    """

    username: str
    api_key: str = field(repr=False)


@dataclass
class RequestSpec:
    """
    One authenticated call.

    Attributes:
        uri: Path appended to the resolved base URL, e.g. ``/servers/detail``.
        method: HTTP method.
        body: JSON body.
        query: Query string parameters.
        endpoint: Service to resolve. Defaults to compute.
        region: Region override. Defaults to the session default region.
        headers: Extra headers.
    """

    uri: str
    method: str = "GET"
    body: Optional[Dict[str, Any]] = None
    query: Optional[Dict[str, Any]] = None
    endpoint: Optional[Service] = None
    region: Optional[str] = None
    headers: Optional[Dict[str, str]] = None


@dataclass
class ApiResponse:
    """
    Decoded response of a successful call.
    """

    status_code: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


class Client:
    """
    Authenticated client for the cloud API.

    ``authenticate`` must be called once before any ``authorized_request``.
    """

    def __init__(
        self,
        credentials: Credentials,
        options: Optional[ClientOptions] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        if credentials is None or not credentials.username or not credentials.api_key:
            raise MissingArgument("credentials.username and credentials.api_key are required")
        self.credentials = credentials
        self.options = options or ClientOptions()
        self.http = http or httpx.Client()
        self.http.timeout = httpx.Timeout(timeout=self.options.timeout_ms / 1_000)
        self.http.headers = httpx.Headers({"User-Agent": self.options.user_agent})
        self._session: Optional[Session] = None

    def __enter__(self) -> "Client":
        return self

    def __exit__(
        self,
        exc_type: Type[BaseException],
        exc_value: BaseException,
        traceback: TracebackType,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    @property
    def authorized(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Session:
        """
        Current session.

        Raises:
            AuthorizationError: ``authenticate`` has not succeeded yet.
        """
        if self._session is None:
            raise AuthorizationError("client is not authenticated, call authenticate() first")
        return self._session

    def authenticate(self) -> Session:
        """
        Exchange the API key for a token and service catalog.

        Returns:
            Session: The new session, also stored on the client.

        Raises:
            AuthorizationError: Credentials were rejected.
            RequestError: Transport failure or unexpected status.
        """
        task_id = uuid.uuid4().hex[:8]
        start = time.monotonic()
        target = "POST /tokens"
        payload = {
            "auth": {
                "RAX-KSKEY:apiKeyCredentials": {
                    "username": self.credentials.username,
                    "apiKey": self.credentials.api_key,
                }
            }
        }
        request = self.http.build_request(
            method="POST",
            url=f"{self.options.resolved_auth_url()}/tokens",
            json=payload,
        )
        try:
            response = self.http.send(request)
        except httpx.HTTPError as exc:
            self._log_task(task_id, target, "transport_fail", start)
            raise map_transport_error(target, exc) from exc

        body = self._decode(response)
        if isinstance(body, dict) and body.get("unauthorized"):
            self._log_task(task_id, target, "unauthorized", start)
            raise AuthorizationError(f"{target} credentials rejected")
        if response.status_code >= 400:
            self._log_task(task_id, target, f"fail_status_{response.status_code}", start)
            raise map_http_error(target, response.status_code, body)

        self._session = Session.from_auth_body(body)
        self._log_task(task_id, target, "ok", start)
        return self._session

    def resolve(self, service: Service, region: Optional[str] = None) -> str:
        """
        Resolve the base URL of a service for the current session.

        Raises:
            EndpointNotFound: The catalog has no URL for the service and region.
        """
        session = self.session
        selector = EndpointSelector.for_service(service, region or session.default_region)
        base_url = resolve_endpoint(selector, session.service_catalog)
        if not base_url:
            raise EndpointNotFound(selector.type, selector.name, selector.region)
        return base_url.rstrip("/")

    def _build_request(self, spec: RequestSpec, url: str, token: str) -> httpx.Request:
        request_headers = httpx.Headers(spec.headers or {})
        request_headers["X-Auth-Token"] = token
        request_headers["Accept"] = "application/json"
        return self.http.build_request(
            method=spec.method.upper(),
            url=url,
            params=spec.query,
            json=spec.body,
            headers=request_headers,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def authorized_request(self, spec: RequestSpec) -> ApiResponse:
        """
        Send one authenticated request.

        Exactly one network call is made; nothing is retried here.

        Args:
            spec: Request description.

        Returns:
            ApiResponse: Decoded 2xx response.

        Raises:
            ArgumentError: ``spec`` or its ``uri`` is missing.
            AuthorizationError: Not authenticated, or the token was rejected.
            EndpointNotFound: No catalog URL for the service and region.
            NotFoundError: The API answered 404.
            RequestError: Transport failure or any other non-2xx status.
        """
        if spec is None or not spec.uri:
            raise ArgumentError("request spec with a uri is required")

        base_url = self.resolve(spec.endpoint or Services.COMPUTE, spec.region)
        token = self.session.token

        task_id = uuid.uuid4().hex[:8]
        start = time.monotonic()
        target = f"{spec.method.upper()} {spec.uri}"
        request = self._build_request(spec, f"{base_url}{spec.uri}", token)

        try:
            response = self.http.send(request)
        except httpx.HTTPError as exc:
            self._log_task(task_id, target, "transport_fail", start)
            raise map_transport_error(target, exc) from exc

        body = self._decode(response)
        if response.status_code >= 400:
            self._log_task(task_id, target, f"fail_status_{response.status_code}", start)
            raise map_http_error(target, response.status_code, body)

        self._log_task(task_id, target, "ok", start)
        return ApiResponse(
            status_code=response.status_code,
            body=body,
            headers=dict(response.headers or {}),
        )

    def _log_task(self, task_id: str, target: str, result: str, start: float) -> None:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "task_id=%s target=%s result=%s duration_ms=%s",
            task_id,
            target,
            result,
            duration_ms,
        )
