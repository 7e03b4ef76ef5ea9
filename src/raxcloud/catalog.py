"""Service catalog types and endpoint resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from raxcloud.errors import MissingArgument
from raxcloud.schemas.auth import CatalogEntryModel


@dataclass(frozen=True)
class ServiceEndpoint:
    """One regional base URL of a catalog service.

    Attributes:
        region: Region code, e.g. ``ORD``. Empty for global services.
        public_url: Public base URL of the service in that region.
    """

    region: str
    public_url: str


@dataclass(frozen=True)
class ServiceCatalogEntry:
    """A service listed in the catalog issued at authentication.

    Attributes:
        type: Service type, e.g. ``compute``.
        name: Service name, e.g. ``cloudServersOpenStack``.
        endpoints: Regional endpoints in catalog order.
    """

    type: str
    name: str
    endpoints: tuple[ServiceEndpoint, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, model: CatalogEntryModel) -> "ServiceCatalogEntry":
        return cls(
            type=model.type,
            name=model.name,
            endpoints=tuple(
                ServiceEndpoint(region=item.region, public_url=item.public_url)
                for item in model.endpoints
            ),
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ServiceCatalogEntry":
        """Build an entry from an identity API ``serviceCatalog`` item.

        Args:
            payload: Raw catalog item.

        Returns:
            ServiceCatalogEntry: Parsed entry.
        """
        return cls.from_model(CatalogEntryModel.model_validate(payload))


@dataclass(frozen=True)
class Service:
    """Logical service descriptor, a selector without a region."""

    type: str
    name: str


@dataclass(frozen=True)
class EndpointSelector:
    """Service type, service name and region used to pick one catalog URL."""

    type: str
    name: str
    region: str

    @classmethod
    def for_service(cls, service: Service, region: str) -> "EndpointSelector":
        return cls(type=service.type, name=service.name, region=region)


class Services:
    """Known services of the cloud API."""

    COMPUTE = Service(type="compute", name="cloudServersOpenStack")
    DNS = Service(type="rax:dns", name="cloudDNS")
    LOAD_BALANCERS = Service(type="rax:load-balancer", name="cloudLoadBalancers")
    BLOCK_STORAGE = Service(type="volume", name="cloudBlockStorage")
    DATABASES = Service(type="rax:database", name="cloudDatabases")


def parse_catalog(payload: Iterable[dict[str, Any]]) -> tuple[ServiceCatalogEntry, ...]:
    """Parse a raw ``serviceCatalog`` list.

    Args:
        payload: Raw catalog list.

    Returns:
        tuple[ServiceCatalogEntry, ...]: Entries in catalog order.
    """
    return tuple(ServiceCatalogEntry.from_dict(item) for item in payload)


def resolve_endpoint(
    selector: EndpointSelector,
    catalog: Sequence[ServiceCatalogEntry] | None,
) -> str:
    """Pick the base URL for a selector out of the service catalog.

    The first entry matching ``(type, name)`` wins. An entry with a single
    endpoint is returned whatever the region; otherwise the endpoint whose
    region equals ``selector.region`` is used.

    Args:
        selector: Service type, name and region. All must be non-empty.
        catalog: Catalog issued at authentication.

    Returns:
        str: Base URL, or ``""`` when nothing matches.

    Raises:
        MissingArgument: A selector field is empty or the catalog is ``None``.
    """
    for attr in ("type", "name", "region"):
        if not getattr(selector, attr, None):
            raise MissingArgument(f"selector.{attr} is a required argument")
    if catalog is None:
        raise MissingArgument("catalog is a required argument")

    for entry in catalog:
        if entry.type != selector.type or entry.name != selector.name:
            continue
        if len(entry.endpoints) == 1:
            return entry.endpoints[0].public_url
        for endpoint in entry.endpoints:
            if endpoint.region == selector.region:
                return endpoint.public_url
    return ""
