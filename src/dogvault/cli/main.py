"""CLI entry point for dogvault."""

import click

from dogvault import __version__
from dogvault.cli.backup_cmd import backup_cmd
from dogvault.cli.diff_cmd import diff_cmd
from dogvault.cli.kinds_cmd import kinds_cmd
from dogvault.cli.restore_cmd import restore_cmd


@click.group()
@click.version_option(version=__version__, prog_name="dogvault")
def cli() -> None:
    """dogvault: back up, diff and restore platform configuration resources."""


cli.add_command(backup_cmd)
cli.add_command(restore_cmd)
cli.add_command(diff_cmd)
cli.add_command(kinds_cmd)


if __name__ == "__main__":
    cli()
