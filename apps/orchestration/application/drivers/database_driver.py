from __future__ import annotations

import logging

from apps.orchestration.application.drivers.base import ServiceDriver
from apps.orchestration.application.services.config_store import OrchestrationConfig
from apps.orchestration.domain.errors import ConfigurationError
from apps.orchestration.domain.policies import same_identifier
from apps.orchestration.domain.ports import Merchantable, Providable, Serviceable
from apps.orchestration.models import Merchant, MerchantProvider, Provider, Service

logger = logging.getLogger("switchyard.orchestration")


class DatabaseDriver(ServiceDriver):
    """Reads providers and merchants from the orchestration tables."""

    def resolve_service(self, service):
        if isinstance(service, Service):
            return service
        service_id = service.get_id() if isinstance(service, Serviceable) else service
        row = Service.objects.filter(pk=service_id).first()
        if row is None:
            raise ConfigurationError(f"Service '{service_id}' does not exist.")
        return row

    def refresh(self) -> None:
        self.service.refresh_from_db()

    def is_test_mode(self) -> bool:
        if self.service.test_mode is not None:
            return bool(self.service.test_mode)
        return super().is_test_mode()

    def resolve_provider(self, provider):
        if isinstance(provider, Provider):
            return provider
        if isinstance(provider, Providable):
            provider = provider.get_id()
        if provider is None:
            return None
        return (
            Provider.objects.select_related("service")
            .filter(service_id=self.service.pk, pk=provider)
            .first()
        )

    def get_default_provider(self, merchant=None):
        if isinstance(merchant, Merchantable):
            merchant = self.resolve_merchant(merchant)
        if merchant is not None and merchant.default_provider_id:
            if merchant.supports_provider(merchant.default_provider_id):
                return merchant.default_provider_id
            logger.warning(
                "orchestration.merchant_default_provider_unlinked",
                extra={
                    "service_id": self.service.pk,
                    "merchant_id": merchant.pk,
                    "provider_id": merchant.default_provider_id,
                },
            )
        return self.service.default_provider_id

    def resolve_merchant(self, merchant):
        if isinstance(merchant, Merchant):
            return merchant
        if isinstance(merchant, Merchantable):
            merchant = merchant.get_id()
        if merchant is None:
            return None
        return (
            Merchant.objects.select_related("service", "default_provider")
            .prefetch_related("providers")
            .filter(service_id=self.service.pk, pk=merchant)
            .first()
        )

    def get_default_merchant(self, provider=None):
        return self.service.default_merchant_id

    def check(self, provider, merchant) -> bool:
        service_id = self.service.pk
        if not same_identifier(provider.get_service().get_id(), service_id):
            return False
        if not same_identifier(merchant.get_service().get_id(), service_id):
            return False
        return MerchantProvider.objects.filter(
            merchant_id=merchant.get_id(),
            merchant__service_id=service_id,
            provider_id=provider.get_id(),
            provider__service_id=service_id,
        ).exists()

    def resolve_gateway_class(self, provider) -> str | None:
        if isinstance(provider, Provider) and provider.gateway:
            return provider.gateway
        return self.config.get(self.service.pk, f"providers.{provider.get_id()}.gateway")

    def providers(self) -> list[Provider]:
        return list(Provider.objects.filter(service_id=self.service.pk).order_by("id"))

    def merchants(self) -> list[Merchant]:
        return list(
            Merchant.objects.filter(service_id=self.service.pk).prefetch_related("providers").order_by("id")
        )

    @classmethod
    def services(cls, config: OrchestrationConfig | None = None) -> list[Service]:
        return list(Service.objects.order_by("id"))
