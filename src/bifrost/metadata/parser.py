"""
Runtime metadata decoding.

The node returns its metadata as a SCALE-encoded ``RuntimeMetadataPrefixed``
blob.  Decoding it is delegated to scalecodec; this module only projects the
result down to the module/call names the call resolver needs.
"""

from __future__ import annotations

from typing import Protocol, Union

from scalecodec.base import RuntimeConfigurationObject, ScaleBytes
from scalecodec.exceptions import RemainingScaleBytesNotEmptyException
from scalecodec.type_registry import load_type_registry_preset

from ..errors import ProtocolError
from ..utils import hex_to_bytes
from .models import CallMetadata, MetadataCatalog, ModuleMetadata

METADATA_MAGIC = b"meta"


class MetadataParser(Protocol):
    def parse(self, raw: Union[str, bytes]) -> MetadataCatalog: ...


class ScaleMetadataParser:
    """Decode ``state_getMetadata`` results with scalecodec."""

    def __init__(self, runtime_config: RuntimeConfigurationObject | None = None) -> None:
        if runtime_config is None:
            runtime_config = RuntimeConfigurationObject()
            runtime_config.update_type_registry(load_type_registry_preset(name="core"))
            runtime_config.update_type_registry(load_type_registry_preset(name="legacy"))
        self.runtime_config = runtime_config

    def parse(self, raw: Union[str, bytes]) -> MetadataCatalog:
        try:
            blob = hex_to_bytes(raw) if isinstance(raw, str) else bytes(raw)
        except ValueError as exc:
            raise ProtocolError(f"Runtime metadata is not hex: {exc}") from exc
        if not blob.startswith(METADATA_MAGIC):
            raise ProtocolError(f"Runtime metadata does not start with {METADATA_MAGIC!r}")

        try:
            metadata = self.runtime_config.create_scale_object(
                "MetadataVersioned", data=ScaleBytes(bytearray(blob))
            )
            metadata.decode()
            if getattr(metadata, "portable_registry", None):
                self.runtime_config.add_portable_registry(metadata)
            pallets = tuple(
                ModuleMetadata(
                    name=str(pallet.name),
                    calls=tuple(
                        CallMetadata(
                            name=str(call.name),
                            args=tuple(str(arg.name) for arg in (getattr(call, "args", None) or [])),
                        )
                        for call in (pallet.calls or [])
                    ),
                )
                for pallet in metadata.pallets
            )
        except (
            ValueError,
            KeyError,
            IndexError,
            AttributeError,
            TypeError,
            NotImplementedError,
            RemainingScaleBytesNotEmptyException,
        ) as exc:
            raise ProtocolError(f"Unable to decode runtime metadata: {exc}") from exc
        return MetadataCatalog(pallets)


def parse_metadata(raw: Union[str, bytes]) -> MetadataCatalog:
    return ScaleMetadataParser().parse(raw)
