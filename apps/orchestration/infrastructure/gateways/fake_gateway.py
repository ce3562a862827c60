from __future__ import annotations

from typing import Any

from apps.orchestration.infrastructure.gateways.base import ServiceRequest, ServiceResponse


class FakeRequest(ServiceRequest):
    """Test-mode gateway: records every call and answers with an empty success."""

    def __init__(self, provider, merchant):
        super().__init__(provider, merchant)
        self.calls: list[tuple[str, tuple, dict[str, Any]]] = []

    def supports(self, method: str) -> bool:
        return bool(method) and not method.startswith("_")

    def __getattr__(self, method: str):
        if method.startswith("_"):
            raise AttributeError(method)

        def _record(*args, **kwargs) -> ServiceResponse:
            self.calls.append((method, args, kwargs))
            return ServiceResponse(data={"args": list(args), "kwargs": dict(kwargs)}, meta={"fake": True})

        return _record
