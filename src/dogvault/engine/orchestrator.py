"""BackupOrchestrator: drives backup, restore and diff for resource kinds.

Backup per kind:
  list (cached) -> fetch every id on the worker pool -> sanitize + normalize
  -> wait for the whole batch -> write one file per id.
  A 404/400 on one id skips that id. Any other failure fails the kind and
  nothing from the batch is written.

Restore per id:
  read local snapshot -> look the id up in the cached list -> diff
  -> nothing | create (absent remotely) | update (differs).
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from dogvault.core.diff import diff_documents
from dogvault.core.errors import DogvaultError, EnvelopeMismatchError, LocalIOError, UpstreamError
from dogvault.core.fileutil import atomic_write, is_safe_resource_id, read_text
from dogvault.core.models import (
    ApiResult,
    ItemStatus,
    KindReport,
    OutputFormat,
    ResourceKind,
    ResultStatus,
)
from dogvault.core.normalize import format_for_path, normalize, parse
from dogvault.core.sanitize import changed_fields, sanitize_for_compare, sanitize_for_write
from dogvault.engine.cache import ResponseCache
from dogvault.engine.pool import WorkerPool
from dogvault.resources.base import ResourceAdapter

log = logging.getLogger(__name__)

_SNAPSHOT_SUFFIXES = (".json", ".yaml", ".yml")


class BackupOrchestrator:
    """Kind-agnostic backup/restore/diff engine over a set of adapters.

    The orchestrator owns its worker pool; close() (or use as a context
    manager) shuts it down. The cache is shared with the adapters, which
    invalidate it after every successful create/update.
    """

    def __init__(
        self,
        backup_dir: Path,
        adapters: Iterable[ResourceAdapter],
        cache: ResponseCache,
        pool: WorkerPool,
        output_format: OutputFormat = OutputFormat.YAML,
        array_sort: bool = True,
    ) -> None:
        self.backup_dir = Path(backup_dir)
        self._adapters = {adapter.kind.name: adapter for adapter in adapters}
        self._cache = cache
        self._pool = pool
        self._output_format = OutputFormat(output_format)
        self._array_sort = array_sort

    @property
    def kinds(self) -> list[str]:
        return list(self._adapters)

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    def adapter(self, kind_name: str) -> ResourceAdapter:
        adapter = self._adapters.get(kind_name)
        if adapter is None:
            raise KeyError(f"Resource kind not configured: {kind_name!r}")
        return adapter

    # --- per-kind settings ---

    def output_format(self, kind: ResourceKind) -> OutputFormat:
        return kind.output_format or self._output_format

    def sort_arrays(self, kind: ResourceKind) -> bool:
        return self._array_sort and kind.array_sort

    # --- files ---

    def filename(self, kind_name: str, resource_id: str) -> Path:
        """Path of the snapshot written for an id: <backup_dir>/<kind>/<id>.<ext>."""
        fmt = self.output_format(self.adapter(kind_name).kind)
        return self.backup_dir / kind_name / f"{resource_id}{fmt.extension}"

    def find_snapshot(self, kind_name: str, resource_id: str) -> Path | None:
        """Existing snapshot for an id, preferring the configured format."""
        preferred = self.filename(kind_name, resource_id)
        if preferred.is_file():
            return preferred
        for suffix in _SNAPSHOT_SUFFIXES:
            candidate = preferred.with_suffix(suffix)
            if candidate.is_file():
                return candidate
        return None

    def local_ids(self, kind_name: str) -> list[str]:
        """Ids that have a snapshot file in the kind's backup directory."""
        kind_dir = self.backup_dir / kind_name
        if not kind_dir.is_dir():
            return []
        ids = {
            entry.stem
            for entry in kind_dir.iterdir()
            if entry.is_file()
            and not entry.name.startswith(".")
            and entry.suffix.lower() in _SNAPSHOT_SUFFIXES
        }
        return sorted(ids)

    def _read_local(self, kind_name: str, resource_id: str) -> Any:
        path = self.find_snapshot(kind_name, resource_id)
        if path is None:
            raise LocalIOError(f"No snapshot for {kind_name}/{resource_id} in {self.backup_dir}")
        text = read_text(path)
        try:
            document = parse(text, format_for_path(path.suffix) or OutputFormat.YAML)
        except ValueError as e:
            raise LocalIOError(f"Corrupt snapshot {path}: {e}") from e
        if not isinstance(document, dict):
            raise LocalIOError(f"Snapshot {path} does not contain an object")
        return document

    def _remove_snapshot(self, kind_name: str, resource_id: str) -> None:
        path = self.find_snapshot(kind_name, resource_id)
        if path is not None:
            with contextlib.suppress(OSError):
                path.unlink()

    # --- views ---

    def _listing(self, adapter: ResourceAdapter) -> list[dict]:
        return self._cache.get_or_populate(adapter.kind.name, adapter.list)

    def _render_snapshot(self, adapter: ResourceAdapter, resource: dict) -> str:
        kind = adapter.kind
        return normalize(adapter.snapshot(resource), self.output_format(kind), self.sort_arrays(kind))

    def _local_view(self, adapter: ResourceAdapter, document: dict) -> dict:
        """Comparison view of a local document, matching adapter.snapshot()."""
        try:
            resource = adapter.envelope_unwrap(document)
        except EnvelopeMismatchError:
            return sanitize_for_compare(document, adapter.kind.banlist)
        return adapter.snapshot(resource)

    def _fetch_remote(self, adapter: ResourceAdapter, resource_id: str) -> ApiResult:
        """Remote state of an id, answered from the cached list where possible."""
        kind = adapter.kind
        match = next(
            (r for r in self._listing(adapter) if str(r.get(kind.id_field)) == resource_id),
            None,
        )
        if match is None:
            return ApiResult(ResultStatus.NOT_FOUND, message=f"{resource_id} not listed in {kind.name}")
        if kind.list_is_complete:
            return ApiResult(ResultStatus.OK, resource=match)
        return adapter.get(resource_id)

    # --- backup ---

    def _fetch_snapshot(self, adapter: ResourceAdapter, resource_id: str) -> tuple[ApiResult, str | None]:
        result = adapter.get(resource_id)
        if not result.ok:
            log.warning(
                "%s %s returned %s, skipping: %s",
                adapter.kind.name, resource_id, result.status.value, result.message,
            )
            return result, None
        return result, self._render_snapshot(adapter, result.resource or {})

    def backup(self, kind_name: str) -> KindReport:
        """Back up every listed resource of a kind to its snapshot file."""
        adapter = self.adapter(kind_name)
        kind = adapter.kind
        start = time.monotonic()
        report = KindReport(kind=kind.name, action="backup")
        log.info("Starting %s backup on %d workers", kind.name, self._pool.max_workers)

        try:
            listing = self._listing(adapter)
        except UpstreamError as e:
            log.error("Listing %s failed: %s", kind.name, e)
            report.success = False
            report.error = str(e)
            report.duration_seconds = time.monotonic() - start
            return report

        ids: list[str] = []
        seen: set[str] = set()
        for resource in listing:
            raw_id = resource.get(kind.id_field)
            if raw_id is None:
                log.warning("%s entry without %r field, skipping", kind.name, kind.id_field)
                continue
            resource_id = str(raw_id)
            if resource_id in seen:
                continue
            seen.add(resource_id)
            if not is_safe_resource_id(resource_id):
                log.warning("%s id %r is not usable as a file name, skipping", kind.name, resource_id)
                report.add(resource_id, ItemStatus.SKIPPED, "unsafe id")
                continue
            ids.append(resource_id)

        outcomes = self._pool.run_batch(lambda rid: self._fetch_snapshot(adapter, rid), ids)

        failed = [outcome for outcome in outcomes if not outcome.ok]
        if failed:
            for outcome in outcomes:
                if not outcome.ok:
                    if not isinstance(outcome.error, DogvaultError):
                        log.error("Unexpected error fetching %s %s", kind.name, outcome.item, exc_info=outcome.error)
                    report.add(outcome.item, ItemStatus.FAILED, str(outcome.error))
                elif not outcome.value[0].ok:
                    report.add(outcome.item, ItemStatus.SKIPPED, outcome.value[0].message)
                else:
                    report.add(outcome.item, ItemStatus.DISCARDED, "batch failed")
            report.success = False
            report.error = f"{len(failed)} of {len(outcomes)} fetches failed: {failed[0].error}"
            report.duration_seconds = time.monotonic() - start
            log.error("%s backup aborted: %s", kind.name, report.error)
            return report

        for outcome in outcomes:
            result, text = outcome.value
            if text is None:
                report.add(outcome.item, ItemStatus.SKIPPED, result.message)
                continue
            try:
                atomic_write(self.filename(kind.name, outcome.item), text)
            except LocalIOError as e:
                log.error("%s", e)
                report.add(outcome.item, ItemStatus.FAILED, str(e))
                continue
            report.add(outcome.item, ItemStatus.BACKED_UP)

        report.success = not report.ids(ItemStatus.FAILED)
        report.duration_seconds = time.monotonic() - start
        log.info("Finished %s backup: %s", kind.name, report.summary())
        return report

    # --- restore ---

    def restore(self, kind_name: str, resource_id: str | None = None) -> KindReport:
        """Push local snapshots back to the API: one id, or every local snapshot."""
        adapter = self.adapter(kind_name)
        start = time.monotonic()
        report = KindReport(kind=kind_name, action="restore")
        ids = [resource_id] if resource_id is not None else self.local_ids(kind_name)
        log.info("Restoring %d %s", len(ids), kind_name)

        for rid in ids:
            try:
                self._restore_one(adapter, rid, report)
            except UpstreamError as e:
                log.error("Restore of %s %s failed: %s", kind_name, rid, e)
                report.add(rid, ItemStatus.FAILED, str(e))
                report.error = str(e)
                break

        report.success = not report.ids(ItemStatus.FAILED)
        report.duration_seconds = time.monotonic() - start
        log.info("Finished %s restore: %s", kind_name, report.summary())
        return report

    def _load_local(self, adapter: ResourceAdapter, resource_id: str) -> tuple[dict, dict]:
        """Read a snapshot and unwrap it: (document, resource)."""
        document = self._read_local(adapter.kind.name, resource_id)
        try:
            resource = adapter.envelope_unwrap(document)
        except EnvelopeMismatchError as e:
            raise LocalIOError(f"Snapshot {adapter.kind.name}/{resource_id} is malformed: {e}") from e
        return document, resource

    def _restore_one(self, adapter: ResourceAdapter, resource_id: str, report: KindReport) -> None:
        kind = adapter.kind
        sort_arrays = self.sort_arrays(kind)

        if not is_safe_resource_id(resource_id):
            report.add(resource_id, ItemStatus.FAILED, "unsafe id")
            return
        try:
            document, local = self._load_local(adapter, resource_id)
        except LocalIOError as e:
            log.error("%s", e)
            report.add(resource_id, ItemStatus.FAILED, str(e))
            return

        remote = self._fetch_remote(adapter, resource_id)
        if remote.status == ResultStatus.BAD_REQUEST:
            log.warning("%s %s returned bad request (400), skipping", kind.name, resource_id)
            report.add(resource_id, ItemStatus.SKIPPED, remote.message)
            return

        payload = sanitize_for_write(local, kind.banlist)
        if remote.status == ResultStatus.NOT_FOUND:
            self._create(adapter, resource_id, payload, report)
            return

        changes = diff_documents(
            adapter.snapshot(remote.resource or {}),
            self._local_view(adapter, document),
            sort_arrays,
        )
        if not changes:
            log.debug("%s %s unchanged", kind.name, resource_id)
            report.add(resource_id, ItemStatus.UNCHANGED)
            return

        if kind.partial_update:
            remote_payload = sanitize_for_write(remote.resource or {}, kind.banlist)
            payload = changed_fields(payload, remote_payload, sort_arrays) or payload

        result = adapter.update(resource_id, payload)
        if result.status == ResultStatus.NOT_FOUND:
            log.warning("%s %s disappeared before update, creating it", kind.name, resource_id)
            self._create(adapter, resource_id, sanitize_for_write(local, kind.banlist), report)
        elif result.status == ResultStatus.BAD_REQUEST:
            log.warning("%s %s update rejected (400), skipping: %s", kind.name, resource_id, result.message)
            report.add(resource_id, ItemStatus.SKIPPED, result.message)
        else:
            log.info("Updated %s %s", kind.name, resource_id)
            report.add(resource_id, ItemStatus.UPDATED, diff=changes)

    def _create(self, adapter: ResourceAdapter, resource_id: str, payload: dict, report: KindReport) -> None:
        kind = adapter.kind
        result = adapter.create(payload)
        if result.status == ResultStatus.BAD_REQUEST:
            log.warning("%s %s create rejected (400), skipping: %s", kind.name, resource_id, result.message)
            report.add(resource_id, ItemStatus.SKIPPED, result.message)
            return
        if result.status == ResultStatus.NOT_FOUND:
            raise UpstreamError(f"Create of {kind.name} {resource_id} returned 404", status_code=404)

        new_id = (result.resource or {}).get(kind.id_field)
        if new_id is None or str(new_id) == resource_id:
            log.info("Created %s %s", kind.name, resource_id)
            report.add(resource_id, ItemStatus.CREATED)
            return

        # The platform assigned a new id: write the create response under it, drop the old file.
        new_id = str(new_id)
        log.info("Created %s %s as %s", kind.name, resource_id, new_id)
        message = f"new id {new_id}"
        if not is_safe_resource_id(new_id):
            log.warning("%s id %r is not usable as a file name, snapshot not renamed", kind.name, new_id)
            report.add(resource_id, ItemStatus.CREATED, message + " (unsafe id, snapshot not renamed)")
            return
        text = self._render_snapshot(adapter, result.resource or {})
        try:
            atomic_write(self.filename(kind.name, new_id), text)
        except LocalIOError as e:
            log.error("%s", e)
            message += f" (snapshot not written: {e})"
        else:
            self._remove_snapshot(kind.name, resource_id)
        report.add(resource_id, ItemStatus.CREATED, message)

    # --- diff ---

    def diff(self, kind_name: str, resource_id: str | None = None) -> KindReport:
        """Diff local snapshots against the remote state without changing anything."""
        adapter = self.adapter(kind_name)
        kind = adapter.kind
        start = time.monotonic()
        report = KindReport(kind=kind_name, action="diff")
        ids = [resource_id] if resource_id is not None else self.local_ids(kind_name)

        for rid in ids:
            try:
                document = self._read_local(kind_name, rid)
            except LocalIOError as e:
                log.error("%s", e)
                report.add(rid, ItemStatus.FAILED, str(e))
                continue
            try:
                remote = self._fetch_remote(adapter, rid)
            except UpstreamError as e:
                log.error("Diff of %s %s failed: %s", kind_name, rid, e)
                report.add(rid, ItemStatus.FAILED, str(e))
                report.error = str(e)
                break

            if remote.status == ResultStatus.BAD_REQUEST:
                log.warning("%s %s returned bad request (400), skipping", kind_name, rid)
                report.add(rid, ItemStatus.SKIPPED, remote.message)
                continue

            remote_view = adapter.snapshot(remote.resource or {}) if remote.ok else None
            text = diff_documents(remote_view, self._local_view(adapter, document), self.sort_arrays(kind))
            log.debug("Compared %s %s: %s", kind_name, rid, text or "no changes")
            if text:
                message = "" if remote.ok else "absent remotely"
                report.add(rid, ItemStatus.CHANGED, message, diff=text)
            else:
                report.add(rid, ItemStatus.UNCHANGED)

        report.success = not report.ids(ItemStatus.FAILED)
        report.duration_seconds = time.monotonic() - start
        return report

    # --- lifecycle ---

    def close(self) -> None:
        self._pool.close()

    def __enter__(self) -> BackupOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
