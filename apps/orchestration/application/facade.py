from __future__ import annotations

import logging

from apps.orchestration.application.drivers.base import ServiceDriver
from apps.orchestration.application.services.config_store import OrchestrationConfig
from apps.orchestration.application.services.registry import drivers
from apps.orchestration.domain.errors import (
    ConfigurationError,
    IncompatibilityError,
    NoSuchMethodError,
    ResolutionError,
)
from apps.orchestration.domain.policies import same_identifier
from apps.orchestration.domain.ports import Serviceable
from apps.orchestration.infrastructure.gateways.base import ServiceResponse

logger = logging.getLogger("switchyard.orchestration")


def resolve_driver_class(config: OrchestrationConfig, service_id=None) -> type[ServiceDriver]:
    if service_id is None:
        name = config.get_global("defaults.driver")
        identifier = config.get_global(f"drivers.{name}", name) if name else None
    else:
        name = config.get(service_id, "defaults.driver")
        identifier = config.get(service_id, f"drivers.{name}", name) if name else None

    if not identifier:
        raise ConfigurationError("No orchestration driver configured.")
    try:
        driver_class = drivers.resolve(identifier)
    except ConfigurationError as exc:
        raise ConfigurationError("Invalid driver provided.") from exc
    if not isinstance(driver_class, type) or not issubclass(driver_class, ServiceDriver):
        raise ConfigurationError(f"The {identifier} driver must extend ServiceDriver.")
    return driver_class


class ServiceFacade:
    """
    Entry point for calling a service.

    Holds the selected provider, merchant and the gateway built for that
    pair. The gateway is resolved on first use and dropped whenever the
    provider or merchant changes.

        ServiceFacade("payments").merchant("acme").provider("stripe").charge(100)
    """

    def __init__(self, service, config: OrchestrationConfig | None = None):
        self.config = config or OrchestrationConfig.from_settings()
        service_id = service.get_id() if isinstance(service, Serviceable) else service

        driver_class = resolve_driver_class(self.config, service_id)

        self.driver = driver_class(service, self.config)
        self.service = self.driver.service
        self._provider = None
        self._merchant = None
        self._gateway = None

    def provider(self, provider) -> "ServiceFacade":
        self.set_provider(provider)
        return self

    def get_provider(self):
        if self._provider is None:
            self.set_provider(self.get_default_provider())
        return self._provider

    def set_provider(self, provider) -> None:
        resolved = self.driver.resolve_provider(provider)
        if resolved is None:
            logger.warning(
                "orchestration.provider_unresolved",
                extra={"service_id": self.service.get_id(), "provider": str(provider)},
            )
            raise ResolutionError("Invalid provider.", entity="provider", identifier=provider)

        self._provider = resolved
        self._gateway = None

    def get_default_provider(self):
        return self.driver.get_default_provider(self._merchant)

    def merchant(self, merchant) -> "ServiceFacade":
        self.set_merchant(merchant)
        return self

    def get_merchant(self):
        if self._merchant is None:
            self.set_merchant(self.get_default_merchant())
        return self._merchant

    def set_merchant(self, merchant) -> None:
        resolved = self.driver.resolve_merchant(merchant)
        if resolved is None:
            logger.warning(
                "orchestration.merchant_unresolved",
                extra={"service_id": self.service.get_id(), "merchant": str(merchant)},
            )
            raise ResolutionError("Invalid merchant.", entity="merchant", identifier=merchant)

        self._merchant = resolved
        self._gateway = None

    def get_default_merchant(self):
        return self.driver.get_default_merchant(self._provider)

    def get_gateway(self):
        if self._gateway is None:
            self._set_gateway()
        return self._gateway

    def _set_gateway(self) -> None:
        # Merchant first so that its own default provider can apply.
        merchant = self.get_merchant()
        provider = self.get_provider()

        if not self.driver.check(provider, merchant):
            raise IncompatibilityError(
                f"The {merchant.get_name()} merchant is not supported by the {provider.get_name()} provider.",
                provider=provider,
                merchant=merchant,
            )

        self._gateway = self.driver.resolve_gateway(provider, merchant)

    def supports(self, method: str) -> bool:
        gateway = self.get_gateway()
        if callable(getattr(gateway, "supports", None)):
            return bool(gateway.supports(method))
        return bool(method) and not method.startswith("_") and callable(getattr(gateway, method, None))

    def execute(self, method: str, *args, **kwargs):
        gateway = self.get_gateway()
        if not self.supports(method):
            raise NoSuchMethodError(f"{type(self).__name__}.{method}() not found.")

        logger.debug(
            "orchestration.forward",
            extra={
                "service_id": self.service.get_id(),
                "provider_id": self._provider.get_id(),
                "merchant_id": self._merchant.get_id(),
                "method": method,
            },
        )
        result = getattr(gateway, method)(*args, **kwargs)
        if isinstance(result, ServiceResponse):
            result.configure(method, self._provider, self._merchant)
        return result

    def __getattr__(self, method: str):
        if method.startswith("_"):
            raise AttributeError(method)
        if not self.supports(method):
            raise NoSuchMethodError(f"{type(self).__name__}.{method}() not found.")

        def _forward(*args, **kwargs):
            return self.execute(method, *args, **kwargs)

        return _forward

    def reset(self) -> None:
        self._provider = None
        self._merchant = None
        self._gateway = None
        self.driver.refresh()

    @classmethod
    def all(cls, config: OrchestrationConfig | None = None) -> list:
        config = config or OrchestrationConfig.from_settings()
        return resolve_driver_class(config).services(config)

    @classmethod
    def find(cls, service_id, config: OrchestrationConfig | None = None):
        return next((service for service in cls.all(config) if same_identifier(service.get_id(), service_id)), None)
