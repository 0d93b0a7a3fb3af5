"""
ECDSA / secp256k1 Key Management for Bifrost.

This module handles the signing key used for extrinsics:
- ECDSA signer (eth-account) producing Substrate ``MultiSignature::Ecdsa``
  signatures over the blake2_256 digest of the payload
- Key storage in ~/.bifrost/.env as PRIVATE_KEY (hex) and KEY_TYPE

Dependencies: eth-account / eth-keys (no full web3.py needed)
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_keys import keys

from ..errors import ConfigurationError, SigningError
from ..utils import blake2_256
from .crypto import SCHEME_ECDSA, Ed25519Signer, Signer


# Default config directory
BIFROST_DIR = Path.home() / ".bifrost"
BIFROST_ENV = BIFROST_DIR / ".env"

KEY_TYPES = ("ecdsa", "ed25519")
DEFAULT_KEY_TYPE = "ecdsa"


class EcdsaSigner:
    """secp256k1 signer; signatures are ``r ++ s ++ recovery_id`` (65 bytes)."""

    scheme = SCHEME_ECDSA

    def __init__(self, private_key: str) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        try:
            self._account = Account.from_key(private_key)
        except ValueError as exc:
            raise SigningError(f"Invalid ECDSA private key: {exc}") from exc
        self._public = keys.PrivateKey(bytes(self._account.key)).public_key

    @classmethod
    def generate(cls) -> "EcdsaSigner":
        return cls("0x" + secrets.token_hex(32))

    def public_key(self) -> bytes:
        return self._public.to_compressed_bytes()

    def sign(self, data: bytes) -> bytes:
        signed = self._account.unsafe_sign_hash(blake2_256(bytes(data)))
        recovery_id = signed.v - 27 if signed.v >= 27 else signed.v
        return signed.r.to_bytes(32, "big") + signed.s.to_bytes(32, "big") + bytes((recovery_id,))


def generate_key(key_type: str = DEFAULT_KEY_TYPE) -> str:
    """
    Generate a new 32-byte secret for the given key type.

    Returns:
        0x-prefixed hex secret (66 chars)
    """
    if key_type not in KEY_TYPES:
        raise ConfigurationError(f"Unknown key type {key_type!r}; expected one of {KEY_TYPES}")
    return "0x" + secrets.token_hex(32)


def save_private_key(
    private_key: str,
    env_path: Optional[Path] = None,
    key_type: str = DEFAULT_KEY_TYPE,
) -> Path:
    """
    Save private key and key type to .env file.

    Args:
        private_key: 0x-prefixed hex secret
        env_path: Path to .env file (default: ~/.bifrost/.env)
        key_type: "ecdsa" or "ed25519"

    Returns:
        Path to the saved .env file
    """
    env_path = env_path or BIFROST_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)

    # Read existing .env content or start fresh
    existing = {}
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                existing[k.strip()] = v.strip()

    existing["PRIVATE_KEY"] = private_key
    existing["KEY_TYPE"] = key_type

    lines = [f"{k}={v}" for k, v in existing.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load private key from .env file or environment.

    Args:
        env_path: Path to .env file (default: ~/.bifrost/.env)

    Returns:
        0x-prefixed hex secret

    Raises:
        ConfigurationError: If PRIVATE_KEY is not set anywhere
    """
    env_path = env_path or BIFROST_ENV

    if env_path.exists():
        load_dotenv(env_path, override=True)

    private_key = os.environ.get("PRIVATE_KEY")
    if not private_key:
        raise ConfigurationError(
            f"PRIVATE_KEY not found. Run 'bifrost keygen' or set "
            f"PRIVATE_KEY in {env_path}"
        )

    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key


def load_signer(
    private_key: Optional[str] = None,
    key_type: Optional[str] = None,
    env_path: Optional[Path] = None,
) -> Signer:
    """
    Build a signer from an explicit key or the configured keystore.

    Args:
        private_key: 0x-prefixed hex secret. If None, loads from .env.
        key_type: "ecdsa" or "ed25519". If None, reads KEY_TYPE (default ecdsa).
        env_path: Path to .env file (default: ~/.bifrost/.env)
    """
    if private_key is None:
        private_key = load_private_key(env_path)
    key_type = (key_type or os.environ.get("KEY_TYPE") or DEFAULT_KEY_TYPE).lower()

    if key_type == "ecdsa":
        return EcdsaSigner(private_key)
    if key_type == "ed25519":
        return Ed25519Signer(private_key)
    raise ConfigurationError(f"Unknown key type {key_type!r}; expected one of {KEY_TYPES}")
