from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence


@dataclass(frozen=True)
class CallMetadata:
    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class ModuleMetadata:
    name: str
    calls: tuple[CallMetadata, ...] = ()

    def call_names(self) -> list[str]:
        return [call.name for call in self.calls]


def callable_modules(modules: Sequence[ModuleMetadata]) -> tuple[ModuleMetadata, ...]:
    """Drop modules without calls, keeping the relative order of the rest.

    Call indices on chain are positions within this filtered list, not
    within the raw metadata.
    """
    return tuple(module for module in modules if module.calls)


@dataclass(frozen=True)
class MetadataCatalog:
    pallets: tuple[ModuleMetadata, ...] = ()

    def modules(self) -> tuple[ModuleMetadata, ...]:
        return self.pallets

    def callable_modules(self) -> tuple[ModuleMetadata, ...]:
        return callable_modules(self.pallets)

    @classmethod
    def from_names(cls, entries: Iterable[tuple[str, Iterable[str]]]) -> "MetadataCatalog":
        return cls(
            tuple(
                ModuleMetadata(name, tuple(CallMetadata(call) for call in calls))
                for name, calls in entries
            )
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {module.name: module.call_names() for module in self.pallets}


@dataclass(frozen=True)
class RuntimeVersion:
    spec_name: str
    impl_name: str
    authoring_version: int
    spec_version: int
    impl_version: int
    transaction_version: int | None = None
    apis: tuple[tuple[str, int], ...] = field(default=(), repr=False)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RuntimeVersion":
        return cls(
            spec_name=payload["specName"],
            impl_name=payload["implName"],
            authoring_version=int(payload["authoringVersion"]),
            spec_version=int(payload["specVersion"]),
            impl_version=int(payload["implVersion"]),
            transaction_version=(
                int(payload["transactionVersion"]) if "transactionVersion" in payload else None
            ),
            apis=tuple((api_id, int(version)) for api_id, version in payload.get("apis", [])),
        )


__all__ = [
    "CallMetadata",
    "MetadataCatalog",
    "ModuleMetadata",
    "RuntimeVersion",
    "callable_modules",
]
