"""Authenticated session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from raxcloud.catalog import ServiceCatalogEntry
from raxcloud.errors import AuthorizationError
from raxcloud.schemas.auth import AuthResponse


@dataclass(frozen=True)
class Session:
    """Token, service catalog and default region of one login.

    A session is never renewed. Once the token expires, requests fail with
    ``AuthorizationError`` until ``Client.authenticate`` is called again.

    Attributes:
        token: Opaque token id sent as ``X-Auth-Token``.
        service_catalog: Catalog entries in the order the identity API sent them.
        default_region: Region used when a request does not override it.
        token_expires: Expiry timestamp as reported by the identity API.
        tenant_id: Tenant the token is scoped to, when reported.
    """

    token: str = field(repr=False)
    service_catalog: tuple[ServiceCatalogEntry, ...]
    default_region: str
    token_expires: str | None = None
    tenant_id: str | None = None

    @classmethod
    def from_auth_body(cls, body: dict[str, Any]) -> "Session":
        """Build a session from an identity ``/tokens`` response.

        Args:
            body: Decoded response body.

        Returns:
            Session: Parsed session.

        Raises:
            AuthorizationError: The body carries no usable token.
        """
        try:
            access = AuthResponse.model_validate(body).access
        except ValidationError as exc:
            raise AuthorizationError(
                f"authentication response has no usable token: {exc.error_count()} validation errors"
            ) from exc

        tenant_id = access.token.tenant.id if access.token.tenant else None
        return cls(
            token=access.token.id,
            service_catalog=tuple(
                ServiceCatalogEntry.from_model(item) for item in access.service_catalog
            ),
            default_region=access.user.default_region,
            token_expires=access.token.expires,
            tenant_id=str(tenant_id) if tenant_id is not None else None,
        )
