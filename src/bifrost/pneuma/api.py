"""
Api - Client facade over one Substrate node.

Constructing an ``Api`` queries the node three times (genesis hash, metadata,
runtime version) before returning; there is no lazy mode.  Every later call
opens its own transport session.

Usage::

    api = Api("ws://127.0.0.1:9944", signer=load_signer())
    xt = api.compose_extrinsic("Balances", "transfer", dest, amount)
    block_hash = api.send_extrinsic(xt)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from ..errors import ConfigurationError, ProtocolError
from ..metadata.models import MetadataCatalog, RuntimeVersion
from ..metadata.parser import MetadataParser, ScaleMetadataParser
from ..sigil.crypto import Signer, account_id
from ..utils import hex_to_bytes, storage_key_hash, storage_key_hash_double_map
from . import json_req
from .calls import Call, CallResolver
from .extrinsic import SUPPORTED_VERSIONS, Extrinsic
from .rpc import CancelToken, RpcTransport, Session, get_extrinsic_version, get_node_url
from .scale import decode_uint
from .tx import compose_extrinsic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountLayout:
    """
    Where a runtime keeps an account's nonce and free balance.

    Each field is read as a little-endian integer at a byte offset of the
    raw storage value.  Both entries are maps keyed by the account id.
    """

    nonce_entry: tuple[str, str]
    balance_entry: tuple[str, str]
    hasher: str
    nonce_offset: int = 0
    balance_offset: int = 0


# Separate System.AccountNonce and Balances.FreeBalance maps; the layout of
# runtimes that take the 0xff account-id address.
LEGACY_ACCOUNT_LAYOUT = AccountLayout(
    nonce_entry=("System", "AccountNonce"),
    balance_entry=("Balances", "FreeBalance"),
    hasher="Blake2_256",
)

# One System.Account record: nonce u32, consumers u32, providers u32,
# sufficients u32, data.free u128, ...
ACCOUNT_INFO_LAYOUT = AccountLayout(
    nonce_entry=("System", "Account"),
    balance_entry=("System", "Account"),
    hasher="Blake2_128Concat",
    nonce_offset=0,
    balance_offset=16,
)

ACCOUNT_LAYOUTS = {
    "legacy": LEGACY_ACCOUNT_LAYOUT,
    "account-info": ACCOUNT_INFO_LAYOUT,
}
DEFAULT_ACCOUNT_LAYOUT = "legacy"


def get_account_layout(name: Optional[str] = None) -> AccountLayout:
    """Look up an account layout by name, defaulting to ACCOUNT_LAYOUT from the environment."""
    name = name or os.environ.get("ACCOUNT_LAYOUT", DEFAULT_ACCOUNT_LAYOUT)
    try:
        return ACCOUNT_LAYOUTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown account layout {name!r}; expected one of {sorted(ACCOUNT_LAYOUTS)}"
        ) from None


EVENTS_MODULE = "System"
EVENTS_STORAGE = "Events"


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return hex_to_bytes(value) if isinstance(value, str) else bytes(value)


class Api:
    def __init__(
        self,
        url: Optional[str] = None,
        signer: Optional[Signer] = None,
        extrinsic_version: Optional[int] = None,
        transport=None,
        metadata_parser: Optional[MetadataParser] = None,
        logger: Optional[logging.Logger] = None,
        timeout: Optional[float] = None,
        account_layout: Optional[AccountLayout] = None,
    ) -> None:
        self.url = url or get_node_url()
        self.log = logger or logging.getLogger(__name__)
        self.transport = transport or RpcTransport(self.url, logger=self.log, timeout=timeout)
        self.signer = signer
        self.extrinsic_version = extrinsic_version or get_extrinsic_version()
        if self.extrinsic_version not in SUPPORTED_VERSIONS:
            raise ConfigurationError(
                f"Extrinsic version must be one of {SUPPORTED_VERSIONS}, got {self.extrinsic_version}"
            )
        self.metadata_parser = metadata_parser or ScaleMetadataParser()
        self.account_layout = account_layout or get_account_layout()

        self.genesis_hash = self.get_genesis_hash()
        self.metadata = self.get_metadata()
        self.runtime_version = self.get_runtime_version()
        self.spec_version = self.runtime_version.spec_version
        self._resolver = CallResolver(self.metadata)
        self.log.info(
            "Connected to %s (genesis %s, spec %s v%d)",
            self.url,
            self.genesis_hash,
            self.runtime_version.spec_name,
            self.spec_version,
        )

    # -- signer ------------------------------------------------------------

    def set_signer(self, signer: Optional[Signer]) -> None:
        self.signer = signer

    @property
    def account_id(self) -> bytes:
        if self.signer is None:
            raise ConfigurationError("No signer configured")
        return account_id(self.signer.public_key())

    # -- chain info --------------------------------------------------------

    def get_request(self, request: dict, cancel: Optional[CancelToken] = None) -> Any:
        """Run one single-read request and return its ``result``."""
        return self.transport.read(request, cancel=cancel)

    def get_genesis_hash(self) -> str:
        genesis = self.get_request(json_req.chain_get_block_hash(0))
        if not isinstance(genesis, str):
            raise ProtocolError(f"Node returned no genesis hash: {genesis!r}")
        return genesis

    def get_metadata(self) -> MetadataCatalog:
        raw = self.get_request(json_req.state_get_metadata())
        if raw is None:
            raise ProtocolError("Node returned no metadata")
        return self.metadata_parser.parse(raw)

    def get_runtime_version(self) -> RuntimeVersion:
        payload = self.get_request(json_req.state_get_runtime_version())
        try:
            return RuntimeVersion.from_dict(payload)
        except (TypeError, KeyError, ValueError) as exc:
            raise ProtocolError(f"Malformed runtime version: {payload!r}") from exc

    def get_spec_version(self) -> int:
        return self.get_runtime_version().spec_version

    # -- storage -----------------------------------------------------------

    def get_storage(
        self,
        module: str,
        storage_name: str,
        param: Optional[bytes] = None,
        hasher: str = "Blake2_128Concat",
        block_hash: Optional[str] = None,
    ) -> Optional[str]:
        """
        Read a plain storage value or a map entry.

        Returns:
            0x-hex SCALE value, or None when the key is absent
        """
        key = storage_key_hash(module, storage_name, param, hasher)
        self.log.debug("Storage %s.%s -> %s", module, storage_name, key)
        return self.get_request(json_req.state_get_storage(key, block_hash))

    def get_storage_double_map(
        self,
        module: str,
        storage_name: str,
        first: bytes,
        second: bytes,
        hasher1: str = "Blake2_128Concat",
        hasher2: str = "Blake2_128Concat",
        block_hash: Optional[str] = None,
    ) -> Optional[str]:
        key = storage_key_hash_double_map(module, storage_name, first, second, hasher1, hasher2)
        self.log.debug("Storage %s.%s -> %s", module, storage_name, key)
        return self.get_request(json_req.state_get_storage(key, block_hash))

    def _read_account_field(
        self, entry: tuple[str, str], account: Union[str, bytes], type_string: str, offset: int
    ) -> int:
        module, storage_name = entry
        raw = self.get_storage(module, storage_name, _as_bytes(account), self.account_layout.hasher)
        if raw is None:
            return 0
        try:
            value, _ = decode_uint(type_string, hex_to_bytes(raw), offset)
        except ValueError as exc:
            raise ProtocolError(f"Malformed {module}.{storage_name} value: {exc}") from exc
        return value

    def get_account_nonce(self, account: Union[str, bytes]) -> int:
        layout = self.account_layout
        return self._read_account_field(layout.nonce_entry, account, "u32", layout.nonce_offset)

    def get_nonce(self) -> int:
        """
        Nonce of the configured signer's account.

        Raises:
            ConfigurationError: No signer configured (raised before any request)
        """
        if self.signer is None:
            raise ConfigurationError("Cannot look up a nonce without a signer")
        return self.get_account_nonce(self.account_id)

    def get_free_balance(self, account: Union[str, bytes, None] = None) -> int:
        if account is None:
            account = self.account_id
        layout = self.account_layout
        return self._read_account_field(layout.balance_entry, account, "u128", layout.balance_offset)

    # -- extrinsics --------------------------------------------------------

    def compose_call(self, module: str, call: str, *args: bytes) -> Call:
        return self._resolver.resolve(module, call, *args)

    def compose_extrinsic(self, module: str, call: str, *args: bytes) -> Extrinsic:
        return compose_extrinsic(self, module, call, *args)

    def send_extrinsic(
        self,
        extrinsic: Union[Extrinsic, str],
        strict: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        """
        Submit an extrinsic and wait for finality.

        Args:
            extrinsic: Extrinsic or its 0x-hex encoding
            strict: Treat an error on the submission acknowledgement as final
            cancel: Token to abandon the wait

        Returns:
            Hash of the block the extrinsic was finalized in
        """
        xthex = extrinsic.hex_encode() if isinstance(extrinsic, Extrinsic) else extrinsic
        self.log.info("Submitting extrinsic (%d bytes)", (len(xthex) - 2) // 2)
        return self.transport.watch_extrinsic(
            json_req.author_submit_and_watch_extrinsic(xthex), strict=strict, cancel=cancel
        )

    def submit_extrinsic(self, extrinsic: Union[Extrinsic, str]) -> str:
        """Submit without waiting; returns the extrinsic hash."""
        xthex = extrinsic.hex_encode() if isinstance(extrinsic, Extrinsic) else extrinsic
        return self.get_request(json_req.author_submit_extrinsic(xthex))

    # -- subscriptions -----------------------------------------------------

    def subscribe_storage(self, keys: list[str]) -> Session:
        return self.transport.subscribe(json_req.state_subscribe_storage(keys))

    def subscribe_events(
        self,
        sink: Callable[[Any], None],
        cancel: Optional[CancelToken] = None,
        limit: Optional[int] = None,
    ) -> int:
        """
        Forward every ``System.Events`` update to ``sink``.

        Blocks until the session ends, ``cancel`` fires or ``limit`` updates
        have been forwarded.

        Returns:
            Number of updates forwarded
        """
        key = storage_key_hash(EVENTS_MODULE, EVENTS_STORAGE)
        session = self.subscribe_storage([key])
        count = 0
        updates = session.updates(cancel=cancel)
        try:
            for update in updates:
                sink(update)
                count += 1
                if limit is not None and count >= limit:
                    break
        finally:
            updates.close()
            session.close()
        return count
