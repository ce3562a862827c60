from __future__ import annotations

import importlib
import logging
from typing import Callable, Mapping

from apps.orchestration.domain.errors import ConfigurationError

logger = logging.getLogger("switchyard.orchestration")


def import_dotted(dotted: str):
    module_path, _, attr = (dotted or "").rpartition(".")
    if not module_path or not attr:
        raise ImportError(f"'{dotted}' is not a dotted path.")
    module = importlib.import_module(module_path)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ImportError(f"Module '{module_path}' has no attribute '{attr}'.") from exc


class _Registry:
    kind = "component"

    def __init__(self) -> None:
        self._factories: dict[str, Callable] = {}

    def register(self, key: str, factory: Callable | str) -> None:
        key = (key or "").strip()
        if not key:
            raise ConfigurationError(f"A {self.kind} key is required.")
        if isinstance(factory, str):
            factory = self._import(factory)
        if not callable(factory):
            raise ConfigurationError(f"The {self.kind} registered as '{key}' is not callable.")
        self._factories[key] = factory
        logger.debug("orchestration.%s_registered", self.kind, extra={"key": key})

    def register_many(self, entries: Mapping[str, Callable | str] | None) -> None:
        for key, factory in (entries or {}).items():
            self.register(key, factory)

    def unregister(self, key: str) -> None:
        self._factories.pop(key, None)

    def clear(self) -> None:
        self._factories.clear()

    def keys(self) -> list[str]:
        return list(self._factories)

    def has(self, key: str) -> bool:
        return key in self._factories

    def get(self, key: str) -> Callable:
        if key not in self._factories:
            raise ConfigurationError(f"No {self.kind} registered as '{key}'.")
        return self._factories[key]

    def resolve(self, key_or_path) -> Callable:
        """Look a registered key up, falling back to importing a dotted path."""
        if callable(key_or_path):
            return key_or_path
        if not key_or_path:
            raise ConfigurationError(f"A {self.kind} identifier is required.")
        key = str(key_or_path).strip()
        if key in self._factories:
            return self._factories[key]
        return self._import(key)

    def _import(self, dotted: str) -> Callable:
        try:
            factory = import_dotted(dotted)
        except ImportError as exc:
            raise ConfigurationError(f"The {dotted} {self.kind} class does not exist.") from exc
        if not callable(factory):
            raise ConfigurationError(f"The {dotted} {self.kind} is not callable.")
        return factory


class DriverRegistry(_Registry):
    kind = "driver"


class GatewayRegistry(_Registry):
    kind = "gateway"


drivers = DriverRegistry()
gateways = GatewayRegistry()
