"""Tests for signing payload and envelope encoding."""

from __future__ import annotations

import pytest

from bifrost.pneuma.calls import Call
from bifrost.pneuma.extrinsic import (
    EXTRINSIC_V3,
    EXTRINSIC_V4,
    SIGNING_PAYLOAD_HASH_THRESHOLD,
    AdditionalSigned,
    Extra,
    Extrinsic,
    SignatureBlock,
    SignedPayload,
    decode_extrinsic,
    encode_envelope,
    encode_signing_payload,
)
from bifrost.pneuma.scale import decode_compact
from bifrost.utils import blake2_256

GENESIS = bytes.fromhex("ab" * 32)
ACCOUNT = bytes(range(32))

# call header (2) + extra with nonce 0 (3) + spec_version (4) + two hashes (64)
FIXED_PAYLOAD_BYTES = 2 + 3 + 4 + 64


def _payload_of_size(size: int, version: int = EXTRINSIC_V4) -> SignedPayload:
    call = Call(1, 0, b"\x00" * (size - FIXED_PAYLOAD_BYTES))
    return SignedPayload(call, Extra(nonce=0), AdditionalSigned.immortal(100, GENESIS, version))


class TestSigningPayload:
    """The >256 byte digest rule."""

    @pytest.mark.parametrize("size", [255, 256])
    def test_signed_raw_up_to_threshold(self, size: int) -> None:
        payload = _payload_of_size(size)
        assert len(payload.encode()) == size
        assert payload.signing_bytes() == payload.encode()

    def test_signed_as_digest_above_threshold(self) -> None:
        payload = _payload_of_size(SIGNING_PAYLOAD_HASH_THRESHOLD + 1)
        assert len(payload.encode()) == 257
        assert payload.signing_bytes() == blake2_256(payload.encode())
        assert len(payload.signing_bytes()) == 32

    def test_injected_hash_is_used(self) -> None:
        seen = []

        def fake_hash(data: bytes) -> bytes:
            seen.append(data)
            return b"\x11" * 32

        payload = _payload_of_size(300)
        result = encode_signing_payload(payload.call, payload.extra, payload.additional_signed, fake_hash)
        assert result == b"\x11" * 32
        assert seen == [payload.encode()]

    def test_field_order(self) -> None:
        call = Call(4, 0, b"\x99")
        extra = Extra(nonce=5)
        additional = AdditionalSigned.immortal(7, GENESIS)
        encoded = SignedPayload(call, extra, additional).encode()
        assert encoded == (
            b"\x04\x00\x99"
            + b"\x00\x14\x00"
            + (7).to_bytes(4, "little")
            + GENESIS
            + GENESIS
        )


class TestAdditionalSigned:
    def test_arity_follows_version(self) -> None:
        assert AdditionalSigned.immortal(1, GENESIS, EXTRINSIC_V3).arity == 6
        assert AdditionalSigned.immortal(1, GENESIS, EXTRINSIC_V4).arity == 7

    def test_units_encode_to_nothing(self) -> None:
        v3 = AdditionalSigned.immortal(1, GENESIS, EXTRINSIC_V3).encode()
        v4 = AdditionalSigned.immortal(1, GENESIS, EXTRINSIC_V4).encode()
        assert v3 == v4
        assert len(v4) == 68

    def test_hash_length_checked(self) -> None:
        with pytest.raises(ValueError):
            AdditionalSigned(1, b"\x00" * 31, GENESIS)

    def test_unknown_version(self) -> None:
        with pytest.raises(ValueError):
            AdditionalSigned.immortal(1, GENESIS, 5)


class TestEnvelope:
    def test_unsigned_layout(self) -> None:
        encoded = encode_envelope(EXTRINSIC_V4, None, Call(0, 0))
        assert encoded == b"\x0c\x04\x00\x00"

    def test_signed_v4_layout(self) -> None:
        signature = b"\x22" * 65
        block = SignatureBlock(ACCOUNT, signature, Extra(nonce=1), scheme=2)
        encoded = encode_envelope(EXTRINSIC_V4, block, Call(3, 1, b"\x07"))

        length, offset = decode_compact(encoded)
        body = encoded[offset:]
        assert length == len(body)
        assert body[0] == 0x84
        assert body[1] == 0xFF
        assert body[2:34] == ACCOUNT
        assert body[34] == 2
        assert body[35:100] == signature
        assert body[100:103] == b"\x00\x04\x00"
        assert body[103:] == b"\x03\x01\x07"

    def test_signed_v3_writes_raw_signature(self) -> None:
        signature = b"\x33" * 64
        block = SignatureBlock(ACCOUNT, signature, Extra(nonce=0))
        encoded = encode_envelope(EXTRINSIC_V3, block, Call(0, 0))
        _, offset = decode_compact(encoded)
        body = encoded[offset:]
        assert body[0] == 0x83
        assert body[34:98] == signature

    def test_v4_needs_scheme(self) -> None:
        block = SignatureBlock(ACCOUNT, b"\x00" * 64, Extra(nonce=0))
        with pytest.raises(ValueError):
            encode_envelope(EXTRINSIC_V4, block, Call(0, 0))

    def test_length_prefix_matches_vec_encoding_for_long_bodies(self) -> None:
        call = Call(0, 0, b"\x00" * 100)
        encoded = encode_envelope(EXTRINSIC_V4, None, call)
        # 103-byte body needs the two-byte compact mode
        assert encoded[:2] == ((103 << 2) | 1).to_bytes(2, "little")

    def test_hex_encode(self) -> None:
        assert Extrinsic(EXTRINSIC_V4, Call(0, 0)).hex_encode() == "0x0c040000"


class TestRoundTrip:
    @pytest.mark.parametrize(
        "extrinsic",
        [
            Extrinsic(EXTRINSIC_V3, Call(1, 2, b"\x01\x02")),
            Extrinsic(EXTRINSIC_V4, Call(1, 2, b"\x01\x02")),
            Extrinsic(
                EXTRINSIC_V3,
                Call(5, 0, b"\xaa" * 40),
                SignatureBlock(ACCOUNT, b"\x44" * 64, Extra(nonce=70000)),
            ),
            Extrinsic(
                EXTRINSIC_V4,
                Call(5, 0, b"\xaa" * 40),
                SignatureBlock(ACCOUNT, b"\x55" * 64, Extra(nonce=3), scheme=0),
            ),
            Extrinsic(
                EXTRINSIC_V4,
                Call(5, 0),
                SignatureBlock(ACCOUNT, b"\x66" * 65, Extra(nonce=2**40), scheme=2),
            ),
        ],
        ids=["v3-unsigned", "v4-unsigned", "v3-signed", "v4-ed25519", "v4-ecdsa"],
    )
    def test_decode_inverts_encode(self, extrinsic: Extrinsic) -> None:
        assert decode_extrinsic(extrinsic.encode()) == extrinsic
        assert Extrinsic.decode(extrinsic.encode()) == extrinsic

    def test_v3_custom_signature_length(self) -> None:
        xt = Extrinsic(
            EXTRINSIC_V3,
            Call(0, 1),
            SignatureBlock(ACCOUNT, b"\x77" * 65, Extra(nonce=0)),
        )
        assert decode_extrinsic(xt.encode(), signature_length=65) == xt

    def test_trailing_bytes_rejected(self) -> None:
        data = Extrinsic(EXTRINSIC_V4, Call(0, 0)).encode() + b"\x00"
        with pytest.raises(ValueError, match="trailing"):
            decode_extrinsic(data)

    def test_unsupported_version_rejected(self) -> None:
        with pytest.raises(ValueError):
            decode_extrinsic(b"\x0c\x05\x00\x00")
