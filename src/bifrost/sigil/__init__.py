"""
Sigil - Signing keys for Bifrost extrinsics.

ECDSA keys go through eth-account, Ed25519 keys through cryptography.  Both
satisfy the ``Signer`` protocol consumed by the extrinsic builder.
"""
