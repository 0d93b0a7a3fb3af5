"""
Call Resolver - Maps module/call names to on-chain call indices.

Indices come from the runtime metadata fetched at session start, after
modules without calls have been filtered out.  Arguments are passed through
as pre-encoded SCALE bytes; their types are not checked against the metadata.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from ..errors import CallNotFound, ModuleNotFound
from ..metadata.models import MetadataCatalog, ModuleMetadata, callable_modules


@dataclass(frozen=True)
class Call:
    module_index: int
    call_index: int
    args: bytes = b""

    def __post_init__(self) -> None:
        for label, index in (("module", self.module_index), ("call", self.call_index)):
            if not 0 <= index <= 0xFF:
                raise ValueError(f"{label} index {index} does not fit in a byte")

    def encode(self) -> bytes:
        return bytes((self.module_index, self.call_index)) + self.args

    @classmethod
    def decode(cls, data: bytes) -> "Call":
        if len(data) < 2:
            raise ValueError("Call must be at least two bytes (module index, call index)")
        return cls(data[0], data[1], bytes(data[2:]))


class CallResolver:
    """Resolve ``(module, call)`` names against a metadata snapshot."""

    def __init__(self, metadata: Union[MetadataCatalog, Sequence[ModuleMetadata]]) -> None:
        modules = metadata.modules() if isinstance(metadata, MetadataCatalog) else metadata
        self._modules = callable_modules(modules)

    def module_index(self, module: str) -> int:
        for index, entry in enumerate(self._modules):
            if entry.name == module:
                return index
        raise ModuleNotFound(module)

    def call_index(self, module: str, call: str) -> tuple[int, int]:
        module_index = self.module_index(module)
        for index, entry in enumerate(self._modules[module_index].calls):
            if entry.name == call:
                return module_index, index
        raise CallNotFound(module, call)

    def resolve(self, module: str, call: str, *args: bytes) -> Call:
        """
        Build a ``Call`` for ``module.call``.

        Args:
            module: Module name as listed in the metadata (e.g. "Balances")
            call: Call name within that module (e.g. "transfer")
            *args: SCALE-encoded arguments, in declaration order

        Returns:
            Call carrying the module/call indices and the concatenated arguments

        Raises:
            ModuleNotFound: No module with calls has that name
            CallNotFound: The module has no call with that name
        """
        module_index, call_index = self.call_index(module, call)
        return Call(module_index, call_index, b"".join(bytes(arg) for arg in args))


def compose_call(
    metadata: Union[MetadataCatalog, Sequence[ModuleMetadata]],
    module: str,
    call: str,
    *args: bytes,
) -> Call:
    return CallResolver(metadata).resolve(module, call, *args)
