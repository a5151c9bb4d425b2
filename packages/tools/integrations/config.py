"""Per-provider configuration shapes.

Configs are a tagged union on ``provider_type``. A blob read from an
integration record that lacks the tag is tagged with that record's provider
before validation; field presence alone never selects a variant.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _ProviderConfigBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FortnoxConfig(_ProviderConfigBase):
    provider_type: Literal["fortnox"]
    client_id: str = ""
    client_secret: str = ""
    access_token: str | None = None
    refresh_token: str | None = None
    scopes: list[str] = Field(default_factory=list)


class VismaConfig(_ProviderConfigBase):
    provider_type: Literal["visma"]
    client_id: str = ""
    client_secret: str = ""
    access_token: str | None = None
    refresh_token: str | None = None
    target_api: Literal["payroll", "bookkeeping"]


class PEAccountingConfig(_ProviderConfigBase):
    provider_type: Literal["pe_accounting"]
    api_token: str = ""
    company_id: str = ""


ProviderConfig = Annotated[
    Union[FortnoxConfig, VismaConfig, PEAccountingConfig],
    Field(discriminator="provider_type"),
]

_provider_config_adapter: TypeAdapter[Any] = TypeAdapter(ProviderConfig)


class ConfigShapeError(ValueError):
    pass


def parse_provider_config(blob: Any, provider: str | None = None) -> ProviderConfig:
    """Validate a stored config blob.

    Raises ``ConfigShapeError`` or pydantic's ``ValidationError`` (both
    ``ValueError``) when the blob matches no variant.
    """
    if isinstance(blob, _ProviderConfigBase):
        return blob
    if not isinstance(blob, Mapping):
        raise ConfigShapeError(f"config must be a mapping, got {type(blob).__name__}")
    data = dict(blob)
    if provider is not None:
        data.setdefault("provider_type", provider)
    return _provider_config_adapter.validate_python(data)
