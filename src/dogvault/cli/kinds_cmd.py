"""CLI command: dogvault kinds."""

from __future__ import annotations

import click

from dogvault.resources.kinds import registry


@click.command("kinds")
def kinds_cmd() -> None:
    """List the resource kinds that can be backed up."""
    for entry in registry.list_all():
        kind = entry.kind
        update = "PATCH" if kind.partial_update else "PUT"
        click.echo(f"  {kind.name:<16} {kind.collection_path}  (id: {kind.id_field}, update: {update})")
