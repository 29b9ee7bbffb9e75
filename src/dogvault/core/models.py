"""Core data models for dogvault."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# --- Enums ---


class OutputFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"

    @property
    def extension(self) -> str:
        return f".{self.value}"


class ResultStatus(str, Enum):
    """Outcome of a single-resource API call."""

    OK = "ok"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"


class ItemStatus(str, Enum):
    """Per-id status reported by a backup, restore or diff run."""

    BACKED_UP = "backed_up"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    SKIPPED = "skipped"
    FAILED = "failed"
    DISCARDED = "discarded"  # computed, then dropped because the batch failed


# --- Helpers ---


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- Resource kinds ---


@dataclass(frozen=True)
class ResourceKind:
    """Kind-specific contract data: API shape, id field and volatile fields."""

    name: str
    api_version: str
    path: str
    id_field: str = "id"
    envelope: str | None = None  # wraps single-object responses and request bodies
    list_envelope: str | None = None  # wraps list responses; falls back to envelope
    banlist: frozenset[str] = frozenset()
    array_sort: bool = True
    partial_update: bool = False
    list_is_complete: bool = True
    output_format: OutputFormat | None = None

    @property
    def collection_path(self) -> str:
        return f"/api/{self.api_version}/{self.path}"

    def member_path(self, resource_id: str) -> str:
        return f"{self.collection_path}/{resource_id}"

    @property
    def list_key(self) -> str | None:
        return self.list_envelope if self.list_envelope is not None else self.envelope


# --- API results ---


@dataclass
class ApiResult:
    """Result of get/create/update.

    404 and 400 responses are values here rather than exceptions so the
    engine can tell a skippable id from a fatal failure without rescuing.
    """

    status: ResultStatus
    resource: dict | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK


# --- Reports ---


@dataclass
class ItemResult:
    """Outcome for one resource id."""

    id: str
    status: ItemStatus
    message: str = ""
    diff: str = ""


@dataclass
class KindReport:
    """Result of a backup, restore or diff run over one resource kind."""

    kind: str
    action: str
    success: bool = True
    items: list[ItemResult] = field(default_factory=list)
    error: str = ""
    duration_seconds: float = 0.0
    timestamp: datetime = field(default_factory=_now)

    def add(self, resource_id: str, status: ItemStatus, message: str = "", diff: str = "") -> ItemResult:
        item = ItemResult(id=resource_id, status=status, message=message, diff=diff)
        self.items.append(item)
        return item

    def ids(self, status: ItemStatus) -> list[str]:
        return [item.id for item in self.items if item.status == status]

    def counts(self) -> dict[ItemStatus, int]:
        result: dict[ItemStatus, int] = {}
        for item in self.items:
            result[item.status] = result.get(item.status, 0) + 1
        return result

    def summary(self) -> str:
        """One-line human summary, e.g. ``workflows: 2 backed up, 1 skipped``."""
        counts = self.counts()
        parts = [
            f"{counts[status]} {status.value.replace('_', ' ')}"
            for status in ItemStatus
            if counts.get(status)
        ]
        line = f"{self.kind}: {', '.join(parts) if parts else 'nothing to do'}"
        if not self.success:
            line += f" (FAILED: {self.error})" if self.error else " (FAILED)"
        return line
