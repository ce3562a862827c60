from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from apps.orchestration.application.services.config_store import OrchestrationConfig
from apps.orchestration.application.services.registry import gateways
from apps.orchestration.domain.errors import ConfigurationError
from apps.orchestration.domain.ports import GatewayPort

logger = logging.getLogger("switchyard.orchestration")


class ServiceDriver(ABC):
    """
    Resolution strategy for one service.

    A driver turns provider and merchant identifiers into entity objects,
    computes the defaults, checks that a merchant is linked to a provider
    and locates the gateway class requests are executed with.
    """

    def __init__(self, service, config: OrchestrationConfig | None = None):
        self.config = config or OrchestrationConfig.from_settings()
        self.service = self.resolve_service(service)

    def resolve_service(self, service):
        return service

    def refresh(self) -> None:
        pass

    @abstractmethod
    def resolve_provider(self, provider):
        ...

    @abstractmethod
    def get_default_provider(self, merchant=None):
        ...

    @abstractmethod
    def resolve_merchant(self, merchant):
        ...

    @abstractmethod
    def get_default_merchant(self, provider=None):
        ...

    @abstractmethod
    def check(self, provider, merchant) -> bool:
        ...

    @abstractmethod
    def resolve_gateway_class(self, provider) -> str | None:
        ...

    @abstractmethod
    def providers(self) -> list:
        ...

    @abstractmethod
    def merchants(self) -> list:
        ...

    @classmethod
    @abstractmethod
    def services(cls, config: OrchestrationConfig | None = None) -> list:
        ...

    def is_test_mode(self) -> bool:
        return self.config.is_test_mode(self.service.get_id())

    def resolve_gateway(self, provider, merchant) -> GatewayPort:
        if self.is_test_mode():
            identifier = self.config.get(self.service.get_id(), "testing.request_class")
        else:
            identifier = self.resolve_gateway_class(provider)

        if not identifier:
            raise ConfigurationError(
                f"You must set a request_class for the {provider.get_name()} {self.service.get_name()} provider."
            )

        gateway_class = gateways.resolve(identifier)
        logger.debug(
            "orchestration.gateway_resolved",
            extra={
                "service_id": self.service.get_id(),
                "provider_id": provider.get_id(),
                "merchant_id": merchant.get_id(),
                "gateway": getattr(gateway_class, "__name__", str(identifier)),
            },
        )
        return gateway_class(provider, merchant)
