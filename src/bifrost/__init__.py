__all__ = [
    # Facade
    "Api",
    "AccountLayout",
    "ACCOUNT_INFO_LAYOUT",
    "LEGACY_ACCOUNT_LAYOUT",
    # Transport
    "CancelToken",
    "RpcTransport",
    "Session",
    "is_online",
    # Calls and extrinsics
    "Call",
    "CallResolver",
    "compose_call",
    "Extra",
    "AdditionalSigned",
    "SignedPayload",
    "SignatureBlock",
    "Extrinsic",
    "encode_signing_payload",
    "encode_envelope",
    "decode_extrinsic",
    "compose_extrinsic_offline",
    "compose_unsigned",
    # Metadata
    "MetadataCatalog",
    "ModuleMetadata",
    "CallMetadata",
    "RuntimeVersion",
    "parse_metadata",
    # Signing
    "Signer",
    "EcdsaSigner",
    "Ed25519Signer",
    "load_signer",
    "load_private_key",
    "save_private_key",
    # Errors
    "BifrostError",
    "ResolutionError",
    "ModuleNotFound",
    "CallNotFound",
    "SigningError",
    "TransportError",
    "SessionTimeout",
    "SessionCancelled",
    "ProtocolError",
    "NodeRpcError",
    "ConfigurationError",
]

from .errors import (
    BifrostError,
    CallNotFound,
    ConfigurationError,
    ModuleNotFound,
    NodeRpcError,
    ProtocolError,
    ResolutionError,
    SessionCancelled,
    SessionTimeout,
    SigningError,
    TransportError,
)
from .metadata import CallMetadata, MetadataCatalog, ModuleMetadata, RuntimeVersion, parse_metadata
from .pneuma.api import ACCOUNT_INFO_LAYOUT, LEGACY_ACCOUNT_LAYOUT, AccountLayout, Api
from .pneuma.calls import Call, CallResolver, compose_call
from .pneuma.extrinsic import (
    AdditionalSigned,
    Extra,
    Extrinsic,
    SignatureBlock,
    SignedPayload,
    decode_extrinsic,
    encode_envelope,
    encode_signing_payload,
)
from .pneuma.rpc import CancelToken, RpcTransport, Session, is_online
from .pneuma.tx import compose_extrinsic_offline, compose_unsigned
from .sigil.crypto import Ed25519Signer, Signer
from .sigil.eth import EcdsaSigner, load_private_key, load_signer, save_private_key
