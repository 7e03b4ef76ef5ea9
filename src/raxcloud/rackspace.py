"""Rackspace cloud facade."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any, Type

import httpx

from raxcloud.client import Client, ClientOptions, Credentials
from raxcloud.errors import MissingArgument
from raxcloud.resources.blockstorage import VolumesResource
from raxcloud.resources.compute import ServersResource
from raxcloud.resources.databases import DatabasesResource
from raxcloud.resources.dns import DnsResource
from raxcloud.resources.loadbalancers import LoadBalancersResource
from raxcloud.scheduler import Scheduler
from raxcloud.session import Session
from raxcloud.utils.load_config import load_config_by_file


@dataclass(frozen=True)
class RackspaceOptions:
    """Rackspace runtime options.

    Attributes:
        location: ``US`` or ``UK`` identity endpoint.
        auth_url: Explicit identity endpoint, wins over ``location``.
        timeout_ms: Per-request timeout in milliseconds.
    """

    location: str = "US"
    auth_url: str | None = None
    timeout_ms: int = 60_000


class Rackspace:
    """Rackspace resource aggregator.

    Example:
        with Rackspace(username="me", api_key="key") as rax:
            rax.authenticate()
            server = rax.servers.create_with_wait("web-1", image_id, flavor_id)
    """

    def __init__(
        self,
        *,
        username: str,
        api_key: str,
        options: RackspaceOptions | None = None,
        scheduler: Scheduler | None = None,
        http: httpx.Client | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            username: Account user name.
            api_key: Account API key.
            options: Runtime options.
            scheduler: Timer source used by every wait. Defaults to threads.
            http: Preconfigured httpx client.
        """
        opt = options or RackspaceOptions()
        self._client = Client(
            Credentials(username=username, api_key=api_key),
            ClientOptions(location=opt.location, auth_url=opt.auth_url, timeout_ms=opt.timeout_ms),
            http=http,
        )
        self.volumes = VolumesResource(self._client, scheduler)
        self.servers = ServersResource(self._client, scheduler, volumes=self.volumes)
        self.databases = DatabasesResource(self._client, scheduler)
        self.dns = DnsResource(self._client, scheduler)
        self.load_balancers = LoadBalancersResource(self._client, scheduler)

    @classmethod
    def from_config(
        cls,
        path: str,
        *,
        jsonfile: str | None = None,
        scheduler: Scheduler | None = None,
    ) -> "Rackspace":
        """Build a facade from the ``[rackspace]`` table of a config file.

        Args:
            path: TOML or JSON config path.
            jsonfile: Secrets file for ``jsonfile,`` placeholders.
            scheduler: Timer source used by every wait.

        Raises:
            MissingArgument: ``username`` or ``api_key`` is not configured.
        """
        config = load_config_by_file(path, jsonfile=jsonfile)
        section: dict[str, Any] = config.get("rackspace") or {}
        username = section.get("username")
        api_key = section.get("api_key")
        if not username or not api_key:
            raise MissingArgument("rackspace.username and rackspace.api_key must be configured")
        options = RackspaceOptions(
            location=str(section.get("location") or "US"),
            auth_url=section.get("auth_url"),
            timeout_ms=int(section.get("timeout_ms") or 60_000),
        )
        return cls(username=username, api_key=api_key, options=options, scheduler=scheduler)

    @property
    def client(self) -> Client:
        return self._client

    def authenticate(self) -> Session:
        return self._client.authenticate()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Rackspace":
        return self

    def __exit__(
        self,
        exc_type: Type[BaseException],
        exc_value: BaseException,
        traceback: TracebackType,
    ) -> None:
        self.close()
