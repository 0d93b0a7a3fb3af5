"""
Bifrost Signing Primitives.

The extrinsic builder consumes signing as an opaque capability: anything
with ``sign(bytes) -> bytes``, ``public_key() -> bytes`` and a MultiSignature
``scheme`` tag is a signer.

Provides:
- The ``Signer`` protocol and scheme tags
- Account id derivation from a public key
- Ed25519 signer backed by ``cryptography``
"""

from __future__ import annotations

import secrets
from typing import Protocol, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ..errors import SigningError
from ..utils import blake2_256, hex_to_bytes

SCHEME_ED25519 = 0
SCHEME_SR25519 = 1
SCHEME_ECDSA = 2

SCHEME_NAMES = {
    SCHEME_ED25519: "ed25519",
    SCHEME_SR25519: "sr25519",
    SCHEME_ECDSA: "ecdsa",
}


class Signer(Protocol):
    scheme: int

    def sign(self, data: bytes) -> bytes: ...

    def public_key(self) -> bytes: ...


def account_id(public_key: bytes) -> bytes:
    """32-byte account id: the key itself, or its blake2_256 digest for longer keys."""
    if len(public_key) == 32:
        return bytes(public_key)
    return blake2_256(public_key)


def _seed_bytes(seed: Union[str, bytes]) -> bytes:
    try:
        raw = hex_to_bytes(seed) if isinstance(seed, str) else bytes(seed)
    except ValueError as exc:
        raise SigningError(f"Ed25519 seed must be hex: {exc}") from exc
    if len(raw) != 32:
        raise SigningError(f"Ed25519 seed must be 32 bytes, got {len(raw)}")
    return raw


class Ed25519Signer:
    scheme = SCHEME_ED25519

    def __init__(self, seed: Union[str, bytes]) -> None:
        self._key = ed25519.Ed25519PrivateKey.from_private_bytes(_seed_bytes(seed))

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(secrets.token_bytes(32))

    def public_key(self) -> bytes:
        return self._key.public_key().public_bytes(encoding=Encoding.Raw, format=PublicFormat.Raw)

    def sign(self, data: bytes) -> bytes:
        return self._key.sign(bytes(data))

    def verify(self, signature: bytes, data: bytes) -> bool:
        try:
            self._key.public_key().verify(bytes(signature), bytes(data))
        except InvalidSignature:
            return False
        return True
