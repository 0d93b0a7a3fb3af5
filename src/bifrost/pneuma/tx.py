"""
Extrinsic Builder - Build and sign extrinsics.

Offline building takes every chain-derived input from the caller (nonce,
genesis hash, spec version); online building pulls them from a live ``Api``.
Without a signer the online builder produces an unsigned extrinsic.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

from ..errors import SigningError
from ..sigil.crypto import Signer, account_id
from ..utils import blake2_256, hex_to_bytes
from .calls import Call
from .extrinsic import (
    EXTRINSIC_V4,
    SIGNATURE_LENGTHS,
    AdditionalSigned,
    Extra,
    Extrinsic,
    Hash256,
    SignatureBlock,
    encode_signing_payload,
)

if TYPE_CHECKING:
    from .api import Api

logger = logging.getLogger(__name__)


def _hash_bytes(value: Union[str, bytes]) -> bytes:
    return hex_to_bytes(value) if isinstance(value, str) else bytes(value)


def compose_extrinsic_offline(
    signer: Signer,
    call: Call,
    nonce: int,
    genesis_hash: Union[str, bytes],
    spec_version: int,
    version: int = EXTRINSIC_V4,
    hash256: Hash256 = blake2_256,
) -> Extrinsic:
    """
    Build a signed extrinsic without touching the network.

    Args:
        signer: Signing capability (``sign``, ``public_key``, ``scheme``)
        call: Resolved call
        nonce: Sender's account nonce
        genesis_hash: 32-byte genesis hash, raw or 0x-hex
        spec_version: Runtime spec version the signature commits to
        version: Envelope version (3 or 4)
        hash256: Digest used for signing payloads longer than 256 bytes

    Returns:
        Signed Extrinsic

    Raises:
        SigningError: The signer failed or returned a malformed signature
    """
    extra = Extra(nonce=nonce)
    additional = AdditionalSigned.immortal(spec_version, _hash_bytes(genesis_hash), version)
    payload = encode_signing_payload(call, extra, additional, hash256)

    try:
        signature = bytes(signer.sign(payload))
        public_key = bytes(signer.public_key())
    except SigningError:
        raise
    except Exception as exc:
        raise SigningError(f"Signer failed: {exc}") from exc

    expected = SIGNATURE_LENGTHS.get(signer.scheme)
    if expected is not None and len(signature) != expected:
        raise SigningError(
            f"Signature for scheme {signer.scheme} must be {expected} bytes, got {len(signature)}"
        )

    logger.debug("Signed %d-byte payload for nonce %d", len(payload), nonce)
    block = SignatureBlock(account_id(public_key), signature, extra, scheme=signer.scheme)
    return Extrinsic(version, call, block)


def compose_unsigned(call: Call, version: int = EXTRINSIC_V4) -> Extrinsic:
    return Extrinsic(version, call)


def compose_extrinsic(api: "Api", module: str, call: str, *args: bytes) -> Extrinsic:
    """
    Resolve ``module.call`` against the live metadata and build the extrinsic.

    Signs with the api's signer when one is configured; otherwise returns an
    unsigned extrinsic.
    """
    resolved = api.compose_call(module, call, *args)
    if api.signer is None:
        logger.info("No signer configured; composing unsigned %s.%s", module, call)
        return compose_unsigned(resolved, api.extrinsic_version)
    return compose_extrinsic_offline(
        api.signer,
        resolved,
        api.get_nonce(),
        api.genesis_hash,
        api.spec_version,
        api.extrinsic_version,
    )
