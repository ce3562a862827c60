from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ServiceRequest:
    """
    Base class for gateways.

    A gateway is built for one provider/merchant pair. Every public callable
    defined on a subclass is an operation the facade may forward to.
    """

    def __init__(self, provider, merchant):
        self.provider = provider
        self.merchant = merchant

    def supports(self, method: str) -> bool:
        if not method or method.startswith("_") or method in _RESERVED:
            return False
        return callable(getattr(self, method, None))

    def get_provider_settings(self) -> dict:
        return dict(self.merchant.get_provider_settings(self.provider) or {})


_RESERVED = frozenset({"supports", "get_provider_settings"})


@dataclass
class ServiceResponse:
    data: Any = None
    status_code: int = 200
    request_method: str | None = None
    provider: Any = None
    merchant: Any = None
    meta: dict[str, Any] = field(default_factory=dict)

    def configure(self, method: str, provider, merchant) -> "ServiceResponse":
        self.request_method = method
        self.provider = provider
        self.merchant = merchant
        return self

    @property
    def successful(self) -> bool:
        return 200 <= self.status_code < 300
