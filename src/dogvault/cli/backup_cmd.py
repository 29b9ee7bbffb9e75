"""CLI command: dogvault backup."""

from __future__ import annotations

from pathlib import Path

import click

from dogvault.cli import runtime
from dogvault.core.errors import DogvaultError


@click.command("backup")
@runtime.common_options
def backup_cmd(
    home: Path | None,
    backup_dir: Path | None,
    resources: str | None,
    concurrency: int | None,
    output_format: str | None,
    disable_array_sort: bool,
    log_level: str | None,
) -> None:
    """Write a snapshot file for every remote resource of the selected kinds."""
    config = runtime.load_run_config(
        home, backup_dir, resources, concurrency, output_format, disable_array_sort, log_level,
    )
    try:
        with runtime.make_client(config) as client:
            with runtime.build_orchestrator(config, client) as orchestrator:
                click.echo(f"Backing up to {orchestrator.backup_dir}...")
                reports = [orchestrator.backup(kind) for kind in orchestrator.kinds]
    except DogvaultError as e:
        raise click.ClickException(str(e)) from e
    runtime.echo_reports(reports)
