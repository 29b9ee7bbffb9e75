"""CLI command: dogvault diff."""

from __future__ import annotations

from pathlib import Path

import click

from dogvault.cli import runtime
from dogvault.core.errors import DogvaultError


@click.command("diff")
@runtime.common_options
@click.option("--id", "resource_id", default=None, help="Diff a single id (requires one kind).")
def diff_cmd(
    home: Path | None,
    backup_dir: Path | None,
    resources: str | None,
    concurrency: int | None,
    output_format: str | None,
    disable_array_sort: bool,
    log_level: str | None,
    resource_id: str | None,
) -> None:
    """Show how local snapshots differ from the remote resources.

    Lines starting with '-' exist only remotely, '+' only in the snapshot.
    """
    config = runtime.load_run_config(
        home, backup_dir, resources, concurrency, output_format, disable_array_sort, log_level,
    )
    try:
        with runtime.make_client(config) as client:
            with runtime.build_orchestrator(config, client) as orchestrator:
                if resource_id is not None and len(orchestrator.kinds) != 1:
                    raise click.UsageError("--id needs exactly one kind in --resources")
                reports = [orchestrator.diff(kind, resource_id) for kind in orchestrator.kinds]
    except DogvaultError as e:
        raise click.ClickException(str(e)) from e
    runtime.echo_reports(reports, show_diffs=True)
