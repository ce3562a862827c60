from __future__ import annotations

from typing import Any, Mapping

from django.conf import settings


_MISSING = object()


def data_get(data: Mapping[str, Any] | None, path: str, default: Any = None) -> Any:
    """
    Walk a nested mapping with a dotted path.

    Returns ``default`` as soon as a segment is missing or a non-mapping value
    is reached before the end of the path. A key holding ``None`` is a hit.
    """
    if data is None:
        return default
    if not path:
        return data
    current: Any = data
    for segment in str(path).split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return default
        current = current[segment]
    return current


class OrchestrationConfig:
    """
    Two-level configuration store.

    The global namespace holds package-wide settings (drivers, gateways,
    test mode, the service index). Each service reads from its own namespace
    first and falls back to the global one.
    """

    def __init__(self, global_ns: Mapping[str, Any] | None = None, namespaces: Mapping[str, Any] | None = None):
        self.global_ns: Mapping[str, Any] = global_ns or {}
        self.namespaces: Mapping[str, Any] = namespaces or {}

    @classmethod
    def from_settings(cls) -> "OrchestrationConfig":
        return cls(
            global_ns=getattr(settings, "ORCHESTRATION", {}) or {},
            namespaces=getattr(settings, "ORCHESTRATION_SERVICES", {}) or {},
        )

    def namespace_for(self, scope_key) -> str:
        configured = self.service_attributes(scope_key).get("config")
        return str(configured) if configured else str(scope_key)

    def get(self, scope_key, path: str, default: Any = None) -> Any:
        scoped = data_get(self.namespaces.get(self.namespace_for(scope_key)), path, _MISSING)
        if scoped is not _MISSING:
            return scoped
        return self.get_global(path, default)

    def get_global(self, path: str, default: Any = None) -> Any:
        return data_get(self.global_ns, path, default)

    def service_ids(self) -> list:
        return list((self.global_ns.get("services") or {}).keys())

    def service_attributes(self, service_id) -> dict[str, Any]:
        services = self.global_ns.get("services") or {}
        entry = services.get(service_id, services.get(str(service_id)))
        return dict(entry or {})

    def is_test_mode(self, scope_key) -> bool:
        return bool(self.get(scope_key, "test_mode", False))
