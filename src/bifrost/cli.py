"""
Bifrost CLI

Command-line interface for the Bifrost Substrate client.

Identity = one signing key (ECDSA/secp256k1 or Ed25519) kept in
~/.bifrost/.env.  Every command that talks to a node takes --node-url
(or BIFROST_NODE_URL).

Commands:
  keygen  - Create a signing key
  whoami  - Show the configured key and account id
  info    - Show node and runtime information
  query   - Read nonces, balances, storage and modules
  invoke  - Compose, sign and submit an extrinsic
  events  - Follow System.Events
"""

from __future__ import annotations

import logging
import sys

import click

from .errors import BifrostError, ConfigurationError
from .sigil.crypto import SCHEME_NAMES, account_id
from .sigil.eth import load_signer
from .theurgy import connect_api, fail, node_url_option, optional_signer
from .utils import bytes_to_hex


# ============ Constants ============

VERSION = "0.3.0"


# ============ Banner ============


def _print_banner() -> None:
    """Print the single-line Bifrost banner."""
    click.echo(
        click.style("  ◆ ", fg="cyan")
        + click.style("B I F R O S T", fg="bright_white", bold=True)
        + click.style(f"  v{VERSION}", dim=True)
    )
    click.echo()


def _configure_logging(verbose: int) -> None:
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="bifrost")
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug)")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """Bifrost - Substrate node client."""
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.keygen import keygen
from .theurgy.query import query
from .theurgy.invoke import invoke
from .theurgy.events import events

cli.add_command(keygen)
cli.add_command(query)
cli.add_command(invoke)
cli.add_command(events)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show the configured signing key."""
    try:
        signer = load_signer()
    except ConfigurationError:
        click.echo("No key found.")
        click.echo("Run 'bifrost keygen' to create one.")
        sys.exit(1)
    except BifrostError as exc:
        fail(exc)

    public_key = signer.public_key()
    click.echo(f"Scheme:     {SCHEME_NAMES[signer.scheme]}")
    click.echo(f"Public key: {bytes_to_hex(public_key)}")
    click.echo(f"Account:    {bytes_to_hex(account_id(public_key))}")


# ============ Info ============


@cli.command()
@node_url_option
def info(node_url: str) -> None:
    """Show node and runtime information."""
    _print_banner()

    try:
        api = connect_api(node_url)
    except BifrostError as exc:
        fail(exc)

    version = api.runtime_version
    click.secho("  Node ───────────────────────────────────", fg="cyan")
    click.echo()
    click.echo(click.style("  URL:         ", dim=True) + node_url)
    click.echo(click.style("  Genesis:     ", dim=True) + api.genesis_hash)
    click.echo(
        click.style("  Runtime:     ", dim=True)
        + click.style(f"{version.spec_name} v{version.spec_version}", fg="bright_white")
        + click.style(f"  (impl {version.impl_name} v{version.impl_version})", dim=True)
    )
    if version.transaction_version is not None:
        click.echo(click.style("  Tx version:  ", dim=True) + str(version.transaction_version))

    signer = optional_signer()
    if signer is not None:
        click.echo(
            click.style("  Account:     ", dim=True)
            + bytes_to_hex(account_id(signer.public_key()))
        )
    else:
        click.echo(
            click.style("  Account:     ", dim=True)
            + click.style("not initialized", fg="yellow")
            + click.style("  (run: bifrost keygen)", dim=True)
        )
    click.echo()

    click.secho("  Modules ────────────────────────────────", fg="cyan")
    click.echo()
    for index, module in enumerate(api.metadata.callable_modules()):
        click.echo(
            click.style(f"  [{index:>3}] ", dim=True)
            + click.style(module.name, fg="bright_white", bold=True)
            + click.style(f"  {len(module.calls)} calls", dim=True)
        )
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """Bifrost CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass  # Fallback: old Python or non-tty
    cli()


if __name__ == "__main__":
    main()
