"""
Theurgy Invoke - Compose and submit an extrinsic.

Arguments are passed pre-encoded: each --arg is the SCALE hex of one call
argument, in declaration order.  The call is resolved against the node's
metadata, signed with the configured key (unless --unsigned) and submitted;
the command waits for finality and prints the block hash.
"""

from __future__ import annotations

import click

from ..errors import BifrostError
from ..sigil.eth import load_signer
from . import (
    account_layout_option,
    connect_api,
    extrinsic_version_option,
    fail,
    node_url_option,
    parse_hex,
)


@click.command()
@click.argument("module")
@click.argument("call")
@click.option("--arg", "args_hex", multiple=True, help="SCALE-encoded argument (hex); repeatable")
@click.option("--unsigned", is_flag=True, help="Compose an unsigned extrinsic")
@click.option("--dry-run", is_flag=True, help="Print the extrinsic hex without submitting")
@click.option("--strict", is_flag=True, help="Fail on a submission error instead of waiting")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for finality")
@node_url_option
@extrinsic_version_option
@account_layout_option
def invoke(
    module: str,
    call: str,
    args_hex: tuple[str, ...],
    unsigned: bool,
    dry_run: bool,
    strict: bool,
    timeout: float,
    node_url: str,
    extrinsic_version: int,
    account_layout: str,
) -> None:
    """
    Call MODULE.CALL on chain.

    Sends a transaction signed by your key and waits until it is finalized.
    """
    args = [parse_hex(value, "--arg") for value in args_hex]

    try:
        signer = None if unsigned else load_signer()
        api = connect_api(
            node_url,
            signer=signer,
            extrinsic_version=extrinsic_version,
            timeout=timeout,
            account_layout=account_layout,
        )
        extrinsic = api.compose_extrinsic(module, call, *args)
    except BifrostError as exc:
        fail(exc)

    click.echo(f"  Call:      {module}.{call}")
    click.echo(f"  Signed:    {'yes' if extrinsic.is_signed else 'no'}")
    click.echo(f"  Version:   {extrinsic.version}")

    if dry_run:
        click.echo(extrinsic.hex_encode())
        return

    try:
        block_hash = api.send_extrinsic(extrinsic, strict=strict)
    except BifrostError as exc:
        fail(exc)

    click.secho("SUCCESS: Extrinsic finalized!", fg="green")
    click.echo(f"  Block: {block_hash}")
