"""
Extrinsic Codec - Byte layout of signing payloads and extrinsic envelopes.

Envelope layout (both versions):

    compact(len(body)) ++ body
    body = control ++ [address ++ signature ++ extra] ++ call

``control`` holds the version in its low seven bits and the signed flag in the
high bit.  The length prefix covers every byte of ``body``, which makes the
whole envelope byte-identical to a ``Vec<u8>`` holding ``body``: nodes can skip
an extrinsic without understanding it.

Version 3 writes the signer's raw signature; version 4 prefixes it with the
MultiSignature scheme tag.  The address is always the indexed-address ``Id``
form, ``0xff ++ account_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..utils import blake2_256, bytes_to_hex
from .calls import Call
from .scale import decode_bytes, decode_compact, encode_bytes, encode_compact, encode_uint

EXTRINSIC_V3 = 3
EXTRINSIC_V4 = 4
SUPPORTED_VERSIONS = (EXTRINSIC_V3, EXTRINSIC_V4)

SIGNED_FLAG = 0b1000_0000
VERSION_MASK = 0b0111_1111

# Signing payloads longer than this are signed as their blake2_256 digest.
SIGNING_PAYLOAD_HASH_THRESHOLD = 256

IMMORTAL_ERA = b"\x00"
ADDRESS_ID_PREFIX = 0xFF
ACCOUNT_ID_LENGTH = 32
HASH_LENGTH = 32

# MultiSignature variant -> signature length
SIGNATURE_LENGTHS = {0: 64, 1: 64, 2: 65}

Hash256 = Callable[[bytes], bytes]


def _check_version(version: int) -> None:
    if version not in SUPPORTED_VERSIONS:
        raise ValueError(f"Unsupported extrinsic version {version}")


@dataclass(frozen=True)
class Extra:
    """Signed extra: (era, compact nonce, compact fee). Era is always immortal."""

    nonce: int
    fee: int = 0

    def encode(self) -> bytes:
        return IMMORTAL_ERA + encode_compact(self.nonce) + encode_compact(self.fee)

    @classmethod
    def decode(cls, data: bytes, offset: int = 0) -> tuple["Extra", int]:
        if data[offset:offset + 1] != IMMORTAL_ERA:
            raise ValueError("Only immortal eras are supported")
        nonce, offset = decode_compact(data, offset + 1)
        fee, offset = decode_compact(data, offset)
        return cls(nonce=nonce, fee=fee), offset


@dataclass(frozen=True)
class AdditionalSigned:
    """
    Data mirrored into the signing payload but never transmitted.

    Version 3 is the tuple ``(spec_version, genesis, checkpoint, (), (), ())``,
    version 4 adds one more unit.  Units encode to nothing, so both produce the
    same bytes; the variant still has to match the envelope version.
    """

    spec_version: int
    genesis_hash: bytes
    checkpoint_hash: bytes
    version: int = EXTRINSIC_V4

    def __post_init__(self) -> None:
        _check_version(self.version)
        for label, value in (("genesis", self.genesis_hash), ("checkpoint", self.checkpoint_hash)):
            if len(value) != HASH_LENGTH:
                raise ValueError(f"{label} hash must be {HASH_LENGTH} bytes, got {len(value)}")

    @classmethod
    def immortal(cls, spec_version: int, genesis_hash: bytes, version: int = EXTRINSIC_V4) -> "AdditionalSigned":
        # Immortal transactions checkpoint against the genesis block.
        return cls(spec_version, genesis_hash, genesis_hash, version)

    @property
    def arity(self) -> int:
        return 6 if self.version == EXTRINSIC_V3 else 7

    def encode(self) -> bytes:
        return encode_uint("u32", self.spec_version) + bytes(self.genesis_hash) + bytes(self.checkpoint_hash)


@dataclass(frozen=True)
class SignedPayload:
    call: Call
    extra: Extra
    additional_signed: AdditionalSigned

    def encode(self) -> bytes:
        return self.call.encode() + self.extra.encode() + self.additional_signed.encode()

    def signing_bytes(self, hash256: Hash256 = blake2_256) -> bytes:
        """Bytes handed to the signer: the raw encoding, or its digest when too long."""
        payload = self.encode()
        if len(payload) > SIGNING_PAYLOAD_HASH_THRESHOLD:
            return hash256(payload)
        return payload


def encode_signing_payload(
    call: Call,
    extra: Extra,
    additional_signed: AdditionalSigned,
    hash256: Hash256 = blake2_256,
) -> bytes:
    return SignedPayload(call, extra, additional_signed).signing_bytes(hash256)


@dataclass(frozen=True)
class SignatureBlock:
    account_id: bytes
    signature: bytes
    extra: Extra
    scheme: Optional[int] = None

    def __post_init__(self) -> None:
        if len(self.account_id) != ACCOUNT_ID_LENGTH:
            raise ValueError(f"account id must be {ACCOUNT_ID_LENGTH} bytes, got {len(self.account_id)}")

    def encode(self, version: int) -> bytes:
        address = bytes((ADDRESS_ID_PREFIX,)) + bytes(self.account_id)
        if version == EXTRINSIC_V3:
            signature = bytes(self.signature)
        else:
            if self.scheme is None:
                raise ValueError("Version 4 extrinsics need the signature scheme tag")
            signature = bytes((self.scheme,)) + bytes(self.signature)
        return address + signature + self.extra.encode()


@dataclass(frozen=True)
class Extrinsic:
    version: int
    call: Call
    signature: Optional[SignatureBlock] = None

    def __post_init__(self) -> None:
        _check_version(self.version)

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def encode(self) -> bytes:
        return encode_envelope(self.version, self.signature, self.call)

    def hex_encode(self) -> str:
        return bytes_to_hex(self.encode())

    @classmethod
    def decode(cls, data: bytes, signature_length: int = 64) -> "Extrinsic":
        return decode_extrinsic(data, signature_length)


def encode_envelope(version: int, signature: Optional[SignatureBlock], call: Call) -> bytes:
    _check_version(version)
    if signature is None:
        body = bytes((version & VERSION_MASK,))
    else:
        body = bytes((version | SIGNED_FLAG,)) + signature.encode(version)
    body += call.encode()
    return encode_bytes(body)


def decode_extrinsic(data: bytes, signature_length: int = 64) -> Extrinsic:
    """
    Decode an envelope produced by ``encode_envelope``.

    Args:
        data: Length-prefixed envelope bytes
        signature_length: Raw signature size, only consulted for version 3

    Returns:
        Extrinsic with the decoded call and optional signature block
    """
    body, end = decode_bytes(data)
    if end != len(data):
        raise ValueError(f"{len(data) - end} trailing bytes after extrinsic")
    if not body:
        raise ValueError("Empty extrinsic body")

    control = body[0]
    version = control & VERSION_MASK
    _check_version(version)
    offset = 1

    signature = None
    if control & SIGNED_FLAG:
        if body[offset] != ADDRESS_ID_PREFIX:
            raise ValueError(f"Unsupported address prefix 0x{body[offset]:02x}")
        account_id = body[offset + 1:offset + 1 + ACCOUNT_ID_LENGTH]
        offset += 1 + ACCOUNT_ID_LENGTH

        scheme = None
        length = signature_length
        if version == EXTRINSIC_V4:
            scheme = body[offset]
            offset += 1
            if scheme not in SIGNATURE_LENGTHS:
                raise ValueError(f"Unknown signature scheme {scheme}")
            length = SIGNATURE_LENGTHS[scheme]
        signature_bytes = body[offset:offset + length]
        if len(signature_bytes) != length:
            raise ValueError("Truncated signature")
        offset += length

        extra, offset = Extra.decode(body, offset)
        signature = SignatureBlock(bytes(account_id), bytes(signature_bytes), extra, scheme)

    return Extrinsic(version, Call.decode(body[offset:]), signature)
