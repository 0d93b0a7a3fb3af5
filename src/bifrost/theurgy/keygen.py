"""
Theurgy Keygen - Create the signing key used for extrinsics.

Writes PRIVATE_KEY and KEY_TYPE to ~/.bifrost/.env.  An existing key is kept
unless --force is given.
"""

from __future__ import annotations

import sys

import click

from ..errors import ConfigurationError
from ..sigil import eth
from ..sigil.crypto import SCHEME_NAMES, account_id
from ..utils import bytes_to_hex


@click.command()
@click.option(
    "--key-type",
    type=click.Choice(list(eth.KEY_TYPES)),
    default=eth.DEFAULT_KEY_TYPE,
    show_default=True,
    help="Signature scheme of the new key",
)
@click.option("--force", is_flag=True, help="Overwrite an existing key")
def keygen(key_type: str, force: bool) -> None:
    """Generate a new signing key."""
    env_path = eth.BIFROST_ENV

    if not force:
        try:
            eth.load_private_key(env_path)
        except ConfigurationError:
            pass
        else:
            click.secho(f"A key already exists in {env_path}", fg="yellow")
            click.echo("Use --force to replace it.")
            sys.exit(1)

    private_key = eth.generate_key(key_type)
    signer = eth.load_signer(private_key, key_type)
    path = eth.save_private_key(private_key, env_path, key_type=key_type)

    click.secho("Key created.", fg="green")
    click.echo(f"  Scheme:     {SCHEME_NAMES[signer.scheme]}")
    click.echo(f"  Public key: {bytes_to_hex(signer.public_key())}")
    click.echo(f"  Account:    {bytes_to_hex(account_id(signer.public_key()))}")
    click.echo(f"  Saved to:   {path}")
