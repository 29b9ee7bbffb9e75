"""Process-scoped cache of "list all" responses, one entry per resource kind."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

log = logging.getLogger(__name__)


class ResponseCache:
    """Lock-guarded cache keyed by kind name.

    Each kind has its own lock, held across populate and invalidate, so
    concurrent callers trigger a single load and an invalidation is always
    ordered before the next read of that kind.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[dict]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _lock_for(self, kind: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(kind, threading.Lock())

    def get_or_populate(self, kind: str, loader: Callable[[], list[dict]]) -> list[dict]:
        """Return the cached list for *kind*, calling *loader* on a miss.

        A loader exception leaves the entry empty and propagates.
        """
        with self._lock_for(kind):
            cached = self._entries.get(kind)
            if cached is not None:
                self.hits += 1
                return list(cached)
            self.misses += 1
            log.debug("Cache miss for %s, listing", kind)
            value = list(loader())
            self._entries[kind] = value
            return list(value)

    def invalidate(self, kind: str) -> None:
        with self._lock_for(kind):
            if self._entries.pop(kind, None) is not None:
                log.debug("Invalidated cache for %s", kind)

    def clear(self) -> None:
        with self._guard:
            kinds = list(self._entries)
        for kind in kinds:
            self.invalidate(kind)

    def __contains__(self, kind: str) -> bool:
        with self._lock_for(kind):
            return kind in self._entries
