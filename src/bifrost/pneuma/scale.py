"""
SCALE primitives used by the extrinsic codec.

Thin wrappers around scalecodec's type registry for the handful of types the
envelope needs: compact integers, fixed-width little-endian integers, and the
compact-length-prefixed byte sequence.  Decoders work on ``(data, offset)``
pairs and return the new offset so the envelope can be walked front to back.
"""

from __future__ import annotations

from scalecodec.base import RuntimeConfigurationObject, ScaleBytes
from scalecodec.type_registry import load_type_registry_preset

_runtime_config = RuntimeConfigurationObject()
_runtime_config.update_type_registry(load_type_registry_preset(name="core"))

_FIXED_WIDTHS = {"u8": 1, "u16": 2, "u32": 4, "u64": 8, "u128": 16}


def _encode(type_string: str, value) -> bytes:
    obj = _runtime_config.create_scale_object(type_string)
    return bytes(obj.encode(value).data)


def _decode(type_string: str, data: bytes):
    obj = _runtime_config.create_scale_object(type_string, data=ScaleBytes(bytearray(data)))
    obj.decode()
    return obj.value


def encode_compact(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"Compact integers are unsigned, got {value}")
    return _encode("Compact<u128>", value)


def compact_length(first_byte: int) -> int:
    """Total encoded size of a compact integer, from its first byte."""
    mode = first_byte & 0b11
    if mode == 0b00:
        return 1
    if mode == 0b01:
        return 2
    if mode == 0b10:
        return 4
    return (first_byte >> 2) + 5


def decode_compact(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a compact integer at ``offset``. Returns ``(value, new_offset)``."""
    if offset >= len(data):
        raise ValueError("Unexpected end of data while reading compact integer")
    size = compact_length(data[offset])
    end = offset + size
    if end > len(data):
        raise ValueError("Unexpected end of data while reading compact integer")
    type_string = "Compact<u32>" if size <= 4 else "Compact<u128>"
    return int(_decode(type_string, data[offset:end])), end


def encode_uint(type_string: str, value: int) -> bytes:
    if type_string not in _FIXED_WIDTHS:
        raise ValueError(f"Unsupported integer type {type_string!r}")
    return _encode(type_string, value)


def decode_uint(type_string: str, data: bytes, offset: int = 0) -> tuple[int, int]:
    width = _FIXED_WIDTHS.get(type_string)
    if width is None:
        raise ValueError(f"Unsupported integer type {type_string!r}")
    end = offset + width
    if end > len(data):
        raise ValueError(f"Unexpected end of data while reading {type_string}")
    return int(_decode(type_string, data[offset:end])), end


def encode_bytes(data: bytes) -> bytes:
    """Encode ``data`` as ``Vec<u8>``: compact length prefix followed by the bytes."""
    return encode_compact(len(data)) + bytes(data)


def decode_bytes(data: bytes, offset: int = 0) -> tuple[bytes, int]:
    length, start = decode_compact(data, offset)
    end = start + length
    if end > len(data):
        raise ValueError("Declared length exceeds available data")
    return bytes(data[start:end]), end
