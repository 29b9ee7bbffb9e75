"""Central registry of resource kinds and their adapter classes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dogvault.api.client import ApiClient
from dogvault.core.models import ResourceKind
from dogvault.engine.cache import ResponseCache
from dogvault.resources.base import HttpResourceAdapter

log = logging.getLogger(__name__)


@dataclass
class KindEntry:
    """A registered resource kind."""

    kind: ResourceKind
    cls: type  # adapter class, constructed as cls(kind, client, cache)


class KindRegistry:
    """Maps kind names to their configuration and adapter class."""

    def __init__(self) -> None:
        self._entries: dict[str, KindEntry] = {}

    def register(self, kind: ResourceKind, cls: type = HttpResourceAdapter) -> None:
        """Register a kind. Re-registering a name replaces the previous entry."""
        self._entries[kind.name] = KindEntry(kind=kind, cls=cls)
        log.debug("Registered resource kind: %s (%s)", kind.name, cls.__name__)

    def get_entry(self, name: str) -> KindEntry:
        entry = self._entries.get(name)
        if entry is None:
            raise KeyError(f"Unknown resource kind: {name!r}")
        return entry

    def create(self, name: str, client: ApiClient, cache: ResponseCache) -> HttpResourceAdapter:
        """Instantiate the adapter for a kind."""
        entry = self.get_entry(name)
        return entry.cls(entry.kind, client, cache)

    def names(self) -> list[str]:
        return list(self._entries)

    def list_all(self) -> list[KindEntry]:
        return list(self._entries.values())

    def __contains__(self, name: str) -> bool:
        return name in self._entries


# Global registry, populated by dogvault.resources.kinds
registry = KindRegistry()
