"""
Theurgy Events - Follow System.Events.

Prints the raw SCALE hex of every System.Events change until interrupted or
until --limit updates have been printed.
"""

from __future__ import annotations

from typing import Optional

import click

from ..errors import BifrostError
from . import connect_api, fail, node_url_option


@click.command()
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Stop after N updates")
@node_url_option
def events(limit: Optional[int], node_url: str) -> None:
    """Subscribe to System.Events and print every update."""
    try:
        api = connect_api(node_url)
        count = api.subscribe_events(click.echo, limit=limit)
    except BifrostError as exc:
        fail(exc)
    except KeyboardInterrupt:
        click.echo("Stopped.")
        return

    click.echo(f"Received {count} update(s).")
