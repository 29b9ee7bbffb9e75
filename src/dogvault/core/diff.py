"""Line-oriented structural diff between remote and local snapshots."""

from __future__ import annotations

import difflib
from typing import Any

from dogvault.core.normalize import deep_sort, dump_yaml


def render_for_diff(value: Any, sort_arrays: bool = True) -> str:
    """Canonical YAML view used on both sides of a diff."""
    if value is None:
        return ""
    return dump_yaml(deep_sort(value, sort_arrays))


def diff_text(current: str, stored: str) -> str:
    """Full-context diff from *current* (remote) to *stored* (local).

    Every line is prefixed with ``" "``, ``"-"`` (only in current) or
    ``"+"`` (only in stored). Returns ``""`` when the texts are equal.
    """
    if current == stored:
        return ""
    a = current.splitlines()
    b = stored.splitlines()
    lines = list(difflib.unified_diff(a, b, lineterm="", n=max(len(a), len(b))))
    # drop the ---/+++/@@ header of the single hunk
    return "\n".join(lines[3:])


def diff_documents(remote: Any, local: Any, sort_arrays: bool = True) -> str:
    """Diff two payloads after normalizing them."""
    return diff_text(render_for_diff(remote, sort_arrays), render_for_diff(local, sort_arrays))
