#!/usr/bin/env python3
"""
Shared fixtures: a routed fake of the HTTP layer and authenticated clients.
"""

from __future__ import annotations

import copy
import json
import threading
from typing import Any

import httpx
import pytest

from raxcloud.catalog import ServiceCatalogEntry, parse_catalog
from raxcloud.client import Client, Credentials
from raxcloud.rackspace import Rackspace
from raxcloud.scheduler import VirtualScheduler
from raxcloud.session import Session


TENANT = "123456"

CATALOG = [
    {
        "type": "compute",
        "name": "cloudServersOpenStack",
        "endpoints": [
            {"region": "ORD", "publicURL": f"https://ord.servers.api.example.com/v2/{TENANT}"},
            {"region": "DFW", "publicURL": f"https://dfw.servers.api.example.com/v2/{TENANT}"},
        ],
    },
    {
        "type": "rax:dns",
        "name": "cloudDNS",
        "endpoints": [{"publicURL": f"https://dns.api.example.com/v1.0/{TENANT}"}],
    },
    {
        "type": "rax:load-balancer",
        "name": "cloudLoadBalancers",
        "endpoints": [
            {"region": "ORD", "publicURL": f"https://ord.loadbalancers.api.example.com/v1.0/{TENANT}"},
            {"region": "DFW", "publicURL": f"https://dfw.loadbalancers.api.example.com/v1.0/{TENANT}"},
        ],
    },
    {
        "type": "volume",
        "name": "cloudBlockStorage",
        "endpoints": [
            {"region": "ORD", "publicURL": f"https://ord.blockstorage.api.example.com/v1/{TENANT}"},
            {"region": "DFW", "publicURL": f"https://dfw.blockstorage.api.example.com/v1/{TENANT}"},
        ],
    },
    {
        "type": "rax:database",
        "name": "cloudDatabases",
        "endpoints": [
            {"region": "ORD", "publicURL": f"https://ord.databases.api.example.com/v1.0/{TENANT}"},
            {"region": "DFW", "publicURL": f"https://dfw.databases.api.example.com/v1.0/{TENANT}"},
        ],
    },
]

AUTH_BODY = {
    "access": {
        "token": {
            "id": "token-secret-value",
            "expires": "2030-01-01T00:00:00.000-06:00",
            "tenant": {"id": TENANT, "name": TENANT},
        },
        "serviceCatalog": CATALOG,
        "user": {"id": "42", "name": "demo", "RAX-AUTH:defaultRegion": "DFW"},
    }
}


class DummyHTTPResponse:
    """Minimal stand-in for ``httpx.Response``."""

    def __init__(self, status_code: int, payload: Any = None, headers: dict[str, str] | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = httpx.Headers(headers or {})

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no content")
        return self._payload


class FakeApi:
    """Routes requests by method and URL path suffix to queued responses.

    The last queued response of a route is repeated once the queue runs dry.
    A queued exception is raised instead of returned.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def add(self, method: str, path: str, *responses: Any) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def send(self, request: httpx.Request) -> Any:
        with self._lock:
            self.requests.append(request)
            candidates = [
                key
                for key in self.routes
                if key[0] == request.method and request.url.path.endswith(key[1])
            ]
            if not candidates:
                return DummyHTTPResponse(404, {"itemNotFound": {"code": 404}})
            key = max(candidates, key=lambda item: len(item[1]))
            queue = self.routes[key]
            item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and request.url.path.endswith(path)
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content.decode("utf-8"))

    @staticmethod
    def reply(status_code: int = 200, payload: Any = None, headers: dict[str, str] | None = None) -> DummyHTTPResponse:
        return DummyHTTPResponse(status_code, payload, headers)


@pytest.fixture
def catalog() -> tuple[ServiceCatalogEntry, ...]:
    return parse_catalog(CATALOG)


@pytest.fixture
def auth_body() -> dict[str, Any]:
    return copy.deepcopy(AUTH_BODY)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, fake_api: FakeApi) -> Client:
    """Client with a session already in place and HTTP routed to ``fake_api``."""
    c = Client(Credentials(username="demo", api_key="api-key-secret"))
    monkeypatch.setattr(c.http, "send", fake_api.send)
    c._session = Session.from_auth_body(AUTH_BODY)
    return c


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def rax(monkeypatch: pytest.MonkeyPatch, fake_api: FakeApi) -> Rackspace:
    """Authenticated facade on the threading scheduler."""
    r = Rackspace(username="demo", api_key="api-key-secret")
    monkeypatch.setattr(r.client.http, "send", fake_api.send)
    r.client._session = Session.from_auth_body(AUTH_BODY)
    return r


@pytest.fixture
def virtual_rax(monkeypatch: pytest.MonkeyPatch, fake_api: FakeApi, scheduler: VirtualScheduler) -> Rackspace:
    """Authenticated facade whose waits run on ``scheduler``."""
    r = Rackspace(username="demo", api_key="api-key-secret", scheduler=scheduler)
    monkeypatch.setattr(r.client.http, "send", fake_api.send)
    r.client._session = Session.from_auth_body(AUTH_BODY)
    return r
