from __future__ import annotations

import hashlib
from typing import Callable, Optional

import xxhash


def hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(value.removeprefix("0x"))


def bytes_to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def blake2_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def blake2_128(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=16).digest()


def blake2_128_concat(data: bytes) -> bytes:
    return blake2_128(data) + data


def _xxh64_le(data: bytes, seed: int) -> bytes:
    return xxhash.xxh64(data, seed=seed).intdigest().to_bytes(8, "little")


def twox_64(data: bytes) -> bytes:
    return _xxh64_le(data, 0)


def twox_128(data: bytes) -> bytes:
    return _xxh64_le(data, 0) + _xxh64_le(data, 1)


def twox_64_concat(data: bytes) -> bytes:
    return twox_64(data) + data


def identity(data: bytes) -> bytes:
    return data


HASHERS: dict[str, Callable[[bytes], bytes]] = {
    "Blake2_128": blake2_128,
    "Blake2_256": blake2_256,
    "Blake2_128Concat": blake2_128_concat,
    "Twox128": twox_128,
    "Twox64Concat": twox_64_concat,
    "Identity": identity,
}


def _hasher(name: str) -> Callable[[bytes], bytes]:
    try:
        return HASHERS[name]
    except KeyError:
        raise ValueError(f'Unknown storage hasher "{name}"') from None


def storage_prefix(module: str, storage_name: str) -> bytes:
    return twox_128(module.encode("utf-8")) + twox_128(storage_name.encode("utf-8"))


def storage_key_hash(
    module: str,
    storage_name: str,
    param: Optional[bytes] = None,
    hasher: str = "Blake2_128Concat",
) -> str:
    """Compose the 0x-prefixed storage key of a plain value or a map entry."""
    key = storage_prefix(module, storage_name)
    if param is not None:
        key += _hasher(hasher)(param)
    return bytes_to_hex(key)


def storage_key_hash_double_map(
    module: str,
    storage_name: str,
    first: bytes,
    second: bytes,
    hasher1: str = "Blake2_128Concat",
    hasher2: str = "Blake2_128Concat",
) -> str:
    """Compose the 0x-prefixed storage key of a double map entry."""
    key = storage_prefix(module, storage_name)
    key += _hasher(hasher1)(first)
    key += _hasher(hasher2)(second)
    return bytes_to_hex(key)
