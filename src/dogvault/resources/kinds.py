"""Built-in resource kinds.

Importing this module registers every kind with the global registry.
"""

from __future__ import annotations

from dogvault.core.models import ResourceKind
from dogvault.resources.base import HttpResourceAdapter
from dogvault.resources.registry import KindRegistry, registry

WORKFLOWS = ResourceKind(
    name="workflows",
    api_version="v2",
    path="workflows",
    id_field="id",
    envelope="data",
    banlist=frozenset({
        "createdAt", "modifiedAt", "lastExecutedAt",
        "created_at", "modified_at", "last_executed_at",
    }),
    partial_update=True,
)

DASHBOARDS = ResourceKind(
    name="dashboards",
    api_version="v1",
    path="dashboard",
    id_field="id",
    list_envelope="dashboards",
    banlist=frozenset({"created_at", "modified_at", "url", "author_handle", "author_name"}),
    # list returns summaries without widgets
    list_is_complete=False,
)

MONITORS = ResourceKind(
    name="monitors",
    api_version="v1",
    path="monitor",
    id_field="id",
    banlist=frozenset({
        "overall_state", "overall_state_modified", "matching_downtimes",
        "modified", "created", "creator", "deleted",
    }),
)

LOGS_PIPELINES = ResourceKind(
    name="logs_pipelines",
    api_version="v1",
    path="logs/config/pipelines",
    id_field="id",
    banlist=frozenset({"is_read_only"}),
    # processors run in list order
    array_sort=False,
)


class WorkflowsAdapter(HttpResourceAdapter):
    """Workflows are JSON:API objects; snapshots carry their ``type``."""

    def post_fetch(self, resource: dict) -> dict:
        if "type" in resource:
            return resource
        return {"type": self.kind.name, **resource}


class MonitorsAdapter(HttpResourceAdapter):
    """Synthetics alert monitors are owned by their synthetic test, not backed up."""

    def include_listed(self, resource: dict) -> bool:
        return resource.get("type") != "synthetics alert"


def register_builtin_kinds(target: KindRegistry) -> None:
    target.register(WORKFLOWS, WorkflowsAdapter)
    target.register(DASHBOARDS)
    target.register(MONITORS, MonitorsAdapter)
    target.register(LOGS_PIPELINES)


register_builtin_kinds(registry)
