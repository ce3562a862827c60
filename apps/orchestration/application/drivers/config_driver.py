from __future__ import annotations

import logging

from apps.orchestration.application.drivers.base import ServiceDriver
from apps.orchestration.application.services.config_store import OrchestrationConfig
from apps.orchestration.domain.errors import ConfigurationError
from apps.orchestration.domain.policies import same_identifier
from apps.orchestration.domain.ports import Merchantable, Providable, Serviceable
from apps.orchestration.domain.types import MerchantRecord, ProviderRecord, ServiceRecord

logger = logging.getLogger("switchyard.orchestration")


class ConfigDriver(ServiceDriver):
    """Reads providers and merchants from the service's settings namespace."""

    def resolve_service(self, service):
        if isinstance(service, ServiceRecord):
            return service
        service_id = service.get_id() if isinstance(service, Serviceable) else service
        if not any(same_identifier(key, service_id) for key in self.config.service_ids()):
            raise ConfigurationError(f"Service '{service_id}' is not configured.")
        attributes = self.config.service_attributes(service_id)
        return ServiceRecord(id=service_id, config_key=str(attributes.get("config") or ""), attributes=attributes)

    def _section(self, name: str) -> dict:
        return dict(self.config.get(self.service.get_id(), name, {}) or {})

    def _lookup(self, section: str, identifier):
        for key, data in self._section(section).items():
            if same_identifier(key, identifier):
                return key, dict(data or {})
        return None, None

    def _provider_record(self, key, data: dict) -> ProviderRecord:
        return ProviderRecord(service=self.service, id=key, gateway=data.get("gateway"), attributes=data)

    def _merchant_record(self, key, data: dict) -> MerchantRecord:
        return MerchantRecord(
            service=self.service,
            id=key,
            providers=dict(data.get("providers") or {}),
            default_provider=data.get("default_provider"),
            attributes=data,
        )

    def resolve_provider(self, provider):
        if isinstance(provider, ProviderRecord):
            return provider
        if isinstance(provider, Providable):
            provider = provider.get_id()
        key, data = self._lookup("providers", provider)
        if key is None:
            return None
        return self._provider_record(key, data)

    def get_default_provider(self, merchant=None):
        if isinstance(merchant, Merchantable):
            merchant = self.resolve_merchant(merchant.get_id())
        if merchant is not None and merchant.default_provider:
            if merchant.supports_provider(merchant.default_provider):
                return merchant.default_provider
            logger.warning(
                "orchestration.merchant_default_provider_unlinked",
                extra={
                    "service_id": self.service.get_id(),
                    "merchant_id": merchant.get_id(),
                    "provider_id": merchant.default_provider,
                },
            )
        return self.config.get(self.service.get_id(), "defaults.provider")

    def resolve_merchant(self, merchant):
        if isinstance(merchant, MerchantRecord):
            return merchant
        if isinstance(merchant, Merchantable):
            merchant = merchant.get_id()
        key, data = self._lookup("merchants", merchant)
        if key is None:
            return None
        return self._merchant_record(key, data)

    def get_default_merchant(self, provider=None):
        return self.config.get(self.service.get_id(), "defaults.merchant")

    def check(self, provider, merchant) -> bool:
        service_id = self.service.get_id()
        if not same_identifier(provider.get_service().get_id(), service_id):
            return False
        if not same_identifier(merchant.get_service().get_id(), service_id):
            return False
        current = self.resolve_merchant(merchant.get_id())
        return current is not None and current.supports_provider(provider)

    def resolve_gateway_class(self, provider) -> str | None:
        if isinstance(provider, ProviderRecord) and provider.gateway:
            return provider.gateway
        _, data = self._lookup("providers", provider.get_id())
        return (data or {}).get("gateway")

    def providers(self) -> list[ProviderRecord]:
        return [self._provider_record(key, dict(data or {})) for key, data in self._section("providers").items()]

    def merchants(self) -> list[MerchantRecord]:
        return [self._merchant_record(key, dict(data or {})) for key, data in self._section("merchants").items()]

    @classmethod
    def services(cls, config: OrchestrationConfig | None = None) -> list[ServiceRecord]:
        config = config or OrchestrationConfig.from_settings()
        records = []
        for service_id in config.service_ids():
            attributes = config.service_attributes(service_id)
            records.append(ServiceRecord(id=service_id, config_key=str(attributes.get("config") or ""), attributes=attributes))
        return records
