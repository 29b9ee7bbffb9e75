"""Canonical ordering and serialization of resource payloads.

Snapshots written to disk and the views compared during restore/diff both
pass through here, so two payloads that differ only in key order (or in
element order, for kinds that sort arrays) serialize to identical text.
"""

from __future__ import annotations

import json
from typing import Any

import yaml

from dogvault.core.models import OutputFormat


def _sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def deep_sort(value: Any, sort_arrays: bool = True) -> Any:
    """Return a copy of *value* with map keys ordered at every depth.

    Sequences are ordered by the canonical JSON text of their elements when
    *sort_arrays* is set, and kept as-is otherwise.
    """
    if isinstance(value, dict):
        return {key: deep_sort(value[key], sort_arrays) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        items = [deep_sort(item, sort_arrays) for item in value]
        if sort_arrays:
            items.sort(key=_sort_key)
        return items
    return value


def dump_yaml(value: Any) -> str:
    return yaml.dump(
        value,
        explicit_start=True,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )


def render(value: Any, fmt: OutputFormat) -> str:
    """Serialize an already-sorted value in the given format."""
    if fmt == OutputFormat.JSON:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return dump_yaml(value)


def parse(text: str, fmt: OutputFormat) -> Any:
    """Inverse of render().

    Raises:
        ValueError: If the text is not valid in the given format.
    """
    if fmt == OutputFormat.JSON:
        return json.loads(text)
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML: {e}") from e


def normalize(value: Any, fmt: OutputFormat, sort_arrays: bool = True) -> str:
    """deep_sort + render in one step."""
    return render(deep_sort(value, sort_arrays), fmt)


def format_for_path(suffix: str) -> OutputFormat | None:
    """Map a file suffix (``.json``, ``.yaml``, ``.yml``) to its format."""
    suffix = suffix.lower()
    if suffix == ".json":
        return OutputFormat.JSON
    if suffix in (".yaml", ".yml"):
        return OutputFormat.YAML
    return None
