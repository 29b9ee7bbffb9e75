"""Shared wiring for CLI commands: config, logging, client and orchestrator."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from dogvault.api.client import ApiClient
from dogvault.core.config import config_path, load_config, resolve_home
from dogvault.core.models import ItemStatus, KindReport, OutputFormat
from dogvault.engine.cache import ResponseCache
from dogvault.engine.orchestrator import BackupOrchestrator
from dogvault.engine.pool import WorkerPool
from dogvault.resources.kinds import registry

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def common_options(func):
    """Options shared by backup, restore and diff."""
    options = [
        click.option(
            "--home",
            type=click.Path(path_type=Path),
            default=None,
            help="Override DOGVAULT_HOME path (holds config.yaml).",
        ),
        click.option(
            "--backup-dir",
            type=click.Path(path_type=Path),
            default=None,
            help="Directory holding one sub-directory of snapshots per kind.",
        ),
        click.option("--resources", default=None, help="Comma-separated kinds (default: all)."),
        click.option("--concurrency", type=int, default=None, help="Parallel fetches during backup."),
        click.option(
            "--output-format",
            type=click.Choice(["json", "yaml"]),
            default=None,
            help="Snapshot file format.",
        ),
        click.option(
            "--disable-array-sort",
            is_flag=True,
            default=False,
            help="Keep array order as returned by the API.",
        ),
        click.option("--log-level", default=None, help="debug, info, warning or error."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def load_run_config(
    home: Path | None,
    backup_dir: Path | None = None,
    resources: str | None = None,
    concurrency: int | None = None,
    output_format: str | None = None,
    disable_array_sort: bool = False,
    log_level: str | None = None,
) -> dict:
    """Load config.yaml from home and apply command-line overrides."""
    overrides = {
        "backup_dir": str(backup_dir) if backup_dir else None,
        "resources": resources,
        "concurrency": concurrency,
        "output_format": output_format,
        "log_level": log_level,
        "array_sort": False if disable_array_sort else None,
    }
    config = _load_with_overrides(home, **overrides)
    setup_logging(config)
    return config


def _load_with_overrides(home: Path | None, **overrides) -> dict:
    """Load config.yaml from home and apply non-None command-line overrides."""
    home_path = home or resolve_home()
    config = load_config(config_path(home_path))
    for key, value in overrides.items():
        if value is not None:
            config[key] = value
    return config


def setup_logging(config: dict) -> None:
    level = getattr(logging, str(config.get("log_level", "info")).upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = config.get("log_file")
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(path), encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def selected_kinds(config: dict) -> list[str]:
    """Kind names from config['resources'] (list or comma string); all when empty."""
    raw = config.get("resources") or []
    if isinstance(raw, str):
        raw = raw.split(",")
    names = [str(name).strip() for name in raw if str(name).strip()]
    if not names:
        return registry.names()
    unknown = [name for name in names if name not in registry]
    if unknown:
        raise click.BadParameter(
            f"Unknown resource kind(s): {', '.join(unknown)}. "
            f"Available: {', '.join(registry.names())}",
            param_hint="--resources",
        )
    return names


def make_client(config: dict) -> ApiClient:
    return ApiClient.from_config(config)


def build_orchestrator(config: dict, client: ApiClient) -> BackupOrchestrator:
    """Construct adapters for the selected kinds around one cache and pool."""
    try:
        output_format = OutputFormat(str(config.get("output_format", "yaml")).lower())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--output-format") from e
    concurrency = int(config.get("concurrency", 4))
    if concurrency < 1:
        raise click.BadParameter("must be at least 1", param_hint="--concurrency")

    cache = ResponseCache()
    adapters = [registry.create(name, client, cache) for name in selected_kinds(config)]
    return BackupOrchestrator(
        Path(config["backup_dir"]),
        adapters,
        cache=cache,
        pool=WorkerPool(concurrency),
        output_format=output_format,
        array_sort=bool(config.get("array_sort", True)),
    )


def echo_reports(reports: list[KindReport], show_diffs: bool = False) -> None:
    """Print one summary line per kind; raise ClickException if any failed."""
    for report in reports:
        if show_diffs:
            for item in report.items:
                if item.diff:
                    click.echo(f"--- {report.kind}/{item.id}")
                    click.echo(item.diff)
        click.echo(report.summary())
        for item in report.items:
            if item.message and item.status in (ItemStatus.FAILED, ItemStatus.SKIPPED):
                click.echo(f"  {item.id}: {item.status.value} ({item.message})")

    failed = [report.kind for report in reports if not report.success]
    if failed:
        raise click.ClickException(f"Failed: {', '.join(failed)}")
