from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, List, Optional, Union


class _IdentityModel(BaseModel):
    """
    Base of identity API payload models.

    Unknown keys are ignored and explicit ``null`` values fall back to the
    field default.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class EndpointModel(_IdentityModel):
    region: str = ""
    public_url: str = Field(default="", alias="publicURL")


class CatalogEntryModel(_IdentityModel):
    type: str = ""
    name: str = ""
    endpoints: List[EndpointModel] = Field(default_factory=list)


class TenantModel(_IdentityModel):
    id: Optional[Union[str, int]] = None
    name: Optional[str] = None


class TokenModel(_IdentityModel):
    id: str = Field(min_length=1)
    expires: Optional[str] = None
    tenant: Optional[TenantModel] = None


class UserModel(_IdentityModel):
    id: Optional[Union[str, int]] = None
    name: Optional[str] = None
    default_region: str = Field(default="", alias="RAX-AUTH:defaultRegion")


class AccessModel(_IdentityModel):
    token: TokenModel
    service_catalog: List[CatalogEntryModel] = Field(default_factory=list, alias="serviceCatalog")
    user: UserModel = Field(default_factory=UserModel)


class AuthResponse(_IdentityModel):
    """Body of a successful ``POST /tokens``."""

    access: AccessModel
