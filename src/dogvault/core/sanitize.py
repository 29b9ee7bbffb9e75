"""Strip volatile and structural fields from resource payloads."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from dogvault.core.normalize import deep_sort

# Never valid in a create/update body: the id travels in the request path.
STRUCTURAL_FIELDS = frozenset({"id", "type", "relationships"})

_ATTRIBUTES = "attributes"


def _without(mapping: dict, banned: frozenset[str] | set[str]) -> dict:
    return {key: value for key, value in mapping.items() if key not in banned}


def sanitize_for_compare(resource: dict, banlist: Iterable[str]) -> dict:
    """Drop banlisted keys at the top level and inside ``attributes``.

    Pure and total: the input is not modified and missing keys are ignored.
    """
    banned = frozenset(banlist)
    result = _without(resource, banned)
    attributes = result.get(_ATTRIBUTES)
    if isinstance(attributes, dict):
        result[_ATTRIBUTES] = _without(attributes, banned)
    return result


def sanitize_for_write(resource: dict, banlist: Iterable[str]) -> dict:
    """sanitize_for_compare plus removal of id, type and relationships."""
    result = sanitize_for_compare(resource, banlist)
    return _without(result, STRUCTURAL_FIELDS)


def changed_fields(local: dict, remote: dict, sort_arrays: bool = True) -> dict:
    """Fields of *local* whose values differ from *remote*.

    Used to build partial-update bodies. ``attributes`` is compared one level
    deeper so only the changed attribute keys are sent. Keys present remotely
    but absent locally cannot be expressed in a partial body and are ignored.
    """
    result: dict[str, Any] = {}
    for key, value in local.items():
        remote_value = remote.get(key)
        if key == _ATTRIBUTES and isinstance(value, dict) and isinstance(remote_value, dict):
            nested = {
                k: v
                for k, v in value.items()
                if k not in remote_value
                or deep_sort(v, sort_arrays) != deep_sort(remote_value[k], sort_arrays)
            }
            if nested:
                result[key] = nested
        elif key not in remote or deep_sort(value, sort_arrays) != deep_sort(remote_value, sort_arrays):
            result[key] = value
    return result
