"""
Theurgy - Command implementations for the Bifrost CLI.

Each module corresponds to a top-level CLI command:
- keygen:  Create a signing key in ~/.bifrost/.env
- query:   Read nonces, balances, raw storage and the module list
- invoke:  Compose, sign and submit an extrinsic
- events:  Follow System.Events updates

Shared helpers for building an ``Api`` from CLI options live here.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..errors import BifrostError, ConfigurationError, SigningError
from ..pneuma.api import ACCOUNT_LAYOUTS, DEFAULT_ACCOUNT_LAYOUT, Api, get_account_layout
from ..pneuma.rpc import DEFAULT_EXTRINSIC_VERSION, DEFAULT_NODE_URL
from ..sigil.crypto import Signer
from ..sigil.eth import load_signer
from ..utils import hex_to_bytes

node_url_option = click.option(
    "--node-url",
    envvar="BIFROST_NODE_URL",
    default=DEFAULT_NODE_URL,
    show_default=True,
    help="Node JSON-RPC endpoint (ws://, wss://, http:// or https://)",
)

extrinsic_version_option = click.option(
    "--extrinsic-version",
    envvar="EXTRINSIC_VERSION",
    default=DEFAULT_EXTRINSIC_VERSION,
    type=click.IntRange(3, 4),
    show_default=True,
    help="Extrinsic envelope version",
)

account_layout_option = click.option(
    "--account-layout",
    envvar="ACCOUNT_LAYOUT",
    type=click.Choice(sorted(ACCOUNT_LAYOUTS)),
    default=DEFAULT_ACCOUNT_LAYOUT,
    show_default=True,
    help="Where the runtime stores nonces and balances",
)


def fail(exc: BifrostError) -> None:
    """Report a library error and exit with its exit code."""
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    sys.exit(exc.exit_code)


def optional_signer() -> Optional[Signer]:
    try:
        return load_signer()
    except ConfigurationError:
        return None
    except SigningError as exc:
        fail(exc)


def connect_api(
    node_url: str,
    signer: Optional[Signer] = None,
    extrinsic_version: int = DEFAULT_EXTRINSIC_VERSION,
    timeout: Optional[float] = None,
    account_layout: str = DEFAULT_ACCOUNT_LAYOUT,
) -> Api:
    return Api(
        node_url,
        signer=signer,
        extrinsic_version=extrinsic_version,
        timeout=timeout,
        account_layout=get_account_layout(account_layout),
    )


def parse_hex(value: str, label: str) -> bytes:
    try:
        return hex_to_bytes(value)
    except ValueError:
        raise click.BadParameter(f"{label} must be hex, got {value!r}") from None
