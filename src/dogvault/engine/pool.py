"""Bounded worker pool for per-resource network calls."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


@dataclass
class TaskOutcome:
    """Result of one task: either a value or the exception it raised."""

    item: str
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class WorkerPool:
    """Fixed-size thread pool, owned and closed by whoever constructs it."""

    def __init__(self, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="dogvault-worker",
        )

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def run_batch(self, fn: Callable[[str], Any], items: Iterable[str]) -> list[TaskOutcome]:
        """Run fn(item) for every item and block until all have resolved.

        Outcomes come back in submission order. Exceptions are captured per
        task, never raised here; the caller decides whether the batch failed.
        """
        futures = [(item, self._executor.submit(fn, item)) for item in items]
        wait([future for _, future in futures])

        outcomes = []
        for item, future in futures:
            error = future.exception()
            if error is not None:
                log.debug("Task %s raised %s", item, error)
                outcomes.append(TaskOutcome(item=item, error=error))
            else:
                outcomes.append(TaskOutcome(item=item, value=future.result()))
        return outcomes

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
