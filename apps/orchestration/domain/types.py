from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .policies import headline, same_identifier


@dataclass(frozen=True)
class ServiceRecord:
    id: str
    config_key: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return headline(self.id)


@dataclass(frozen=True)
class ProviderRecord:
    service: ServiceRecord
    id: str
    gateway: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return headline(self.id)

    def get_service(self) -> ServiceRecord:
        return self.service


@dataclass(frozen=True)
class MerchantRecord:
    service: ServiceRecord
    id: str
    providers: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    default_provider: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return headline(self.id)

    def get_service(self) -> ServiceRecord:
        return self.service

    def get_provider_ids(self) -> list:
        return list(self.providers.keys())

    def supports_provider(self, provider) -> bool:
        provider_id = provider.get_id() if hasattr(provider, "get_id") else provider
        return any(same_identifier(key, provider_id) for key in self.providers)

    def get_provider_settings(self, provider) -> Mapping[str, Any]:
        provider_id = provider.get_id() if hasattr(provider, "get_id") else provider
        for key, data in self.providers.items():
            if same_identifier(key, provider_id):
                return dict(data or {})
        return {}
