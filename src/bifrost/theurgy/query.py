"""
Theurgy Query - Read chain state.

Subcommands:
- nonce:   account nonce (defaults to the configured key's account)
- balance: free balance (System.Account or Balances.FreeBalance, per --account-layout)
- storage: raw value of any plain, map or double-map storage entry
- modules: modules with calls, in call-index order
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import BifrostError, ConfigurationError
from ..utils import HASHERS
from . import account_layout_option, connect_api, fail, node_url_option, optional_signer, parse_hex


def _account(account: Optional[str]) -> Optional[bytes]:
    if account is None:
        return None
    return parse_hex(account, "ACCOUNT")


def _require_account(account: Optional[bytes], signer) -> None:
    if account is None and signer is None:
        fail(ConfigurationError("No ACCOUNT given and no key configured (run 'bifrost keygen')"))


@click.group()
def query() -> None:
    """Read chain state."""
    pass


@query.command()
@click.argument("account", required=False)
@node_url_option
@account_layout_option
def nonce(account: Optional[str], node_url: str, account_layout: str) -> None:
    """Show the nonce of ACCOUNT (hex account id)."""
    account_bytes = _account(account)
    signer = None if account_bytes is not None else optional_signer()
    _require_account(account_bytes, signer)
    try:
        api = connect_api(node_url, signer=signer, account_layout=account_layout)
        value = api.get_nonce() if account_bytes is None else api.get_account_nonce(account_bytes)
    except BifrostError as exc:
        fail(exc)
    click.echo(value)


@query.command()
@click.argument("account", required=False)
@node_url_option
@account_layout_option
def balance(account: Optional[str], node_url: str, account_layout: str) -> None:
    """Show the free balance of ACCOUNT (hex account id)."""
    account_bytes = _account(account)
    signer = None if account_bytes is not None else optional_signer()
    _require_account(account_bytes, signer)
    try:
        api = connect_api(node_url, signer=signer, account_layout=account_layout)
        value = api.get_free_balance(account_bytes)
    except BifrostError as exc:
        fail(exc)
    click.echo(value)


@query.command()
@click.argument("module")
@click.argument("name")
@click.option("--key", "key_hex", default=None, help="First map key (SCALE hex)")
@click.option("--key2", "key2_hex", default=None, help="Second map key (SCALE hex)")
@click.option(
    "--hasher",
    type=click.Choice(sorted(HASHERS)),
    default="Blake2_128Concat",
    show_default=True,
    help="Hasher of the first key",
)
@click.option(
    "--hasher2",
    type=click.Choice(sorted(HASHERS)),
    default="Blake2_128Concat",
    show_default=True,
    help="Hasher of the second key",
)
@node_url_option
def storage(
    module: str,
    name: str,
    key_hex: Optional[str],
    key2_hex: Optional[str],
    hasher: str,
    hasher2: str,
    node_url: str,
) -> None:
    """Show the raw SCALE value stored at MODULE NAME."""
    if key2_hex is not None and key_hex is None:
        raise click.UsageError("--key2 needs --key")
    first = parse_hex(key_hex, "--key") if key_hex is not None else None
    second = parse_hex(key2_hex, "--key2") if key2_hex is not None else None

    try:
        api = connect_api(node_url)
        if second is not None:
            value = api.get_storage_double_map(module, name, first, second, hasher, hasher2)
        else:
            value = api.get_storage(module, name, first, hasher)
    except BifrostError as exc:
        fail(exc)

    if value is None:
        click.echo("(empty)")
    else:
        click.echo(value)


@query.command()
@node_url_option
def modules(node_url: str) -> None:
    """List modules with calls, with their call indices."""
    try:
        api = connect_api(node_url)
    except BifrostError as exc:
        fail(exc)

    for module_index, module in enumerate(api.metadata.callable_modules()):
        click.secho(f"[{module_index}] {module.name}", bold=True)
        for call_index, call_name in enumerate(module.call_names()):
            click.echo(f"    [{call_index}] {call_name}")
