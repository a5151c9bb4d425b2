"""Registry of provider adapters plus the metadata the admin UI renders forms from."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field

from packages.common.errors import UnknownProviderError
from packages.common.models import ProviderKey
from packages.tools.integrations.adapters import FortnoxAdapter, PEAccountingAdapter, VismaAdapter
from packages.tools.integrations.base import IntegrationAdapter
from packages.tools.integrations.simulation import FailureSource, Latency


class ConfigField(BaseModel):
    key: str
    label: str
    type: Literal["text", "password", "select"]
    options: list[str] | None = None
    required: bool


class ProviderInfo(BaseModel):
    key: ProviderKey
    label: str
    description: str
    config_fields: list[ConfigField] = Field(default_factory=list)


_OAUTH_FIELDS = [
    ConfigField(key="client_id", label="Client ID", type="text", required=True),
    ConfigField(key="client_secret", label="Client Secret", type="password", required=True),
    ConfigField(key="access_token", label="Access Token", type="password", required=False),
    ConfigField(key="refresh_token", label="Refresh Token", type="password", required=False),
]

PROVIDERS: list[ProviderInfo] = [
    ProviderInfo(
        key=ProviderKey.FORTNOX,
        label="Fortnox",
        description="Sweden's most popular cloud accounting platform. OAuth 2.0 auth, JSON REST API.",
        config_fields=list(_OAUTH_FIELDS),
    ),
    ProviderInfo(
        key=ProviderKey.VISMA,
        label="Visma",
        description="Visma eEkonomi / Lön Smart, payroll or invoicing integration. OAuth 2.0 auth, JSON REST API.",
        config_fields=[
            *_OAUTH_FIELDS,
            ConfigField(
                key="target_api",
                label="Target API",
                type="select",
                options=["payroll", "bookkeeping"],
                required=True,
            ),
        ],
    ),
    ProviderInfo(
        key=ProviderKey.PE_ACCOUNTING,
        label="PE Accounting",
        description="Cloud accounting for consultancies & agencies. API token auth, XML REST API.",
        config_fields=[
            ConfigField(key="api_token", label="API Token", type="password", required=True),
            ConfigField(key="company_id", label="Company ID", type="text", required=True),
        ],
    ),
]


class AdapterRegistry:
    """Fixed provider-key to adapter map, built once and passed to its users."""

    def __init__(self, adapters: Mapping[str, IntegrationAdapter], providers: list[ProviderInfo] | None = None) -> None:
        self._adapters = dict(adapters)
        self._providers = providers if providers is not None else PROVIDERS

    def get(self, provider: str) -> IntegrationAdapter:
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise UnknownProviderError(provider)
        return adapter

    def __contains__(self, provider: object) -> bool:
        return provider in self._adapters

    def providers(self) -> list[ProviderInfo]:
        return [info for info in self._providers if info.key.value in self._adapters]


def build_registry(
    latency: Latency,
    failures: FailureSource,
    call_timeout: float | None = None,
) -> AdapterRegistry:
    """Adapters share one latency, failure source and per-call timeout."""
    adapters: list[IntegrationAdapter] = [
        FortnoxAdapter(latency, failures, call_timeout),
        VismaAdapter(latency, failures, call_timeout),
        PEAccountingAdapter(latency, failures, call_timeout),
    ]
    return AdapterRegistry({adapter.provider.value: adapter for adapter in adapters})
