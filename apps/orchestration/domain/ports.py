from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Serviceable(Protocol):
    def get_id(self) -> str | int:
        ...

    def get_name(self) -> str:
        ...


@runtime_checkable
class Providable(Protocol):
    def get_id(self) -> str | int:
        ...

    def get_name(self) -> str:
        ...

    def get_service(self) -> Serviceable:
        ...


@runtime_checkable
class Merchantable(Protocol):
    def get_id(self) -> str | int:
        ...

    def get_name(self) -> str:
        ...

    def get_service(self) -> Serviceable:
        ...

    def get_provider_ids(self) -> list:
        ...

    def get_provider_settings(self, provider) -> Mapping[str, Any]:
        ...


class GatewayPort(Protocol):
    provider: Providable
    merchant: Merchantable

    def supports(self, method: str) -> bool:
        ...
