"""Shared fixtures: an in-memory API served through httpx.MockTransport."""

from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from typing import Any

import httpx
import pytest

from dogvault.api.client import ApiClient
from dogvault.core.models import OutputFormat, ResourceKind
from dogvault.engine.cache import ResponseCache
from dogvault.engine.orchestrator import BackupOrchestrator
from dogvault.engine.pool import WorkerPool
from dogvault.resources.base import HttpResourceAdapter
from dogvault.resources.kinds import WORKFLOWS, WorkflowsAdapter

BASE_URL = "https://api.example.test"


class FakeApi:
    """Stateful stand-in for one resource kind's endpoints."""

    def __init__(self, kind: ResourceKind) -> None:
        self.kind = kind
        self.store: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.bodies: list[tuple[str, str, Any]] = []
        # (method, path) -> forced status code
        self.fail: dict[tuple[str, str], int] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self._clients: list[ApiClient] = []

    def add(self, resource: dict) -> None:
        self.store[str(resource[self.kind.id_field])] = copy.deepcopy(resource)

    def count(self, method: str, path: str | None = None) -> int:
        return sum(1 for m, p in self.calls if m == method and (path is None or p == path))

    def writes(self) -> list[tuple[str, str, Any]]:
        return [entry for entry in self.bodies if entry[0] != "GET"]

    def _wrap(self, value: Any, key: str | None) -> Any:
        return {key: value} if key else value

    def _unwrap(self, body: Any) -> dict:
        key = self.kind.envelope
        return dict(body[key]) if key else dict(body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        body = json.loads(request.content) if request.content else None
        with self._lock:
            self.calls.append((method, path))
            self.bodies.append((method, path, body))

        forced = self.fail.get((method, path))
        if forced:
            return httpx.Response(forced, json={"errors": [f"forced {forced}"]})

        collection = self.kind.collection_path
        id_field = self.kind.id_field
        if path == collection:
            if method == "GET":
                items = [copy.deepcopy(r) for r in self.store.values()]
                return httpx.Response(200, json=self._wrap(items, self.kind.list_key))
            if method == "POST":
                with self._lock:
                    new_id = f"new-{self._next_id}"
                    self._next_id += 1
                created = {**self._unwrap(body), id_field: new_id}
                self.store[new_id] = created
                return httpx.Response(200, json=self._wrap(copy.deepcopy(created), self.kind.envelope))

        if path.startswith(collection + "/"):
            rid = path[len(collection) + 1:]
            if rid not in self.store:
                return httpx.Response(404, json={"errors": ["Not found"]})
            if method == "GET":
                return httpx.Response(200, json=self._wrap(copy.deepcopy(self.store[rid]), self.kind.envelope))
            if method == "PUT":
                self.store[rid] = {**self._unwrap(body), id_field: rid}
            elif method == "PATCH":
                current = self.store[rid]
                for key, value in self._unwrap(body).items():
                    if isinstance(value, dict) and isinstance(current.get(key), dict):
                        current[key] = {**current[key], **value}
                    else:
                        current[key] = value
            return httpx.Response(200, json=self._wrap(copy.deepcopy(self.store[rid]), self.kind.envelope))

        return httpx.Response(404, json={"errors": ["No route"]})

    def client(self) -> ApiClient:
        client = ApiClient(BASE_URL, api_key="api-key", app_key="app-key", transport=httpx.MockTransport(self.handler))
        self._clients.append(client)
        return client

    def close(self) -> None:
        for client in self._clients:
            client.close()
        self._clients.clear()


@pytest.fixture
def workflow_abc_123() -> dict:
    return {
        "id": "abc-123-def",
        "attributes": {
            "name": "Test Workflow",
            "description": "A test workflow for CI/CD",
            "steps": [
                {
                    "name": "step_1",
                    "action": "com.datadoghq.http",
                    "params": {
                        "url": "https://example.com/api",
                        "method": "POST",
                    },
                }
            ],
            "triggers": [
                {
                    "type": "schedule",
                    "schedule": "0 9 * * 1-5",
                }
            ],
        },
        "created_at": "2024-01-01T00:00:00Z",
        "modified_at": "2024-01-02T00:00:00Z",
        "last_executed_at": "2024-01-03T00:00:00Z",
    }


@pytest.fixture
def workflow_xyz_456() -> dict:
    return {
        "id": "xyz-456-ghi",
        "attributes": {
            "name": "Another Workflow",
            "description": "Another test workflow",
            "steps": [],
            "triggers": [],
        },
        "created_at": "2024-02-01T00:00:00Z",
        "modified_at": "2024-02-02T00:00:00Z",
    }


@pytest.fixture
def workflow_api(workflow_abc_123: dict, workflow_xyz_456: dict) -> FakeApi:
    api = FakeApi(WORKFLOWS)
    api.add(workflow_abc_123)
    api.add(workflow_xyz_456)
    return api


@pytest.fixture
def make_orchestrator(tmp_path: Path):
    """Factory: make_orchestrator(api, adapter_cls=..., **kwargs) -> BackupOrchestrator."""
    created: list[tuple[BackupOrchestrator, FakeApi]] = []

    def _make(
        api: FakeApi,
        adapter_cls: type = HttpResourceAdapter,
        output_format: OutputFormat = OutputFormat.JSON,
        workers: int = 2,
        array_sort: bool = True,
    ) -> BackupOrchestrator:
        cache = ResponseCache()
        adapter = adapter_cls(api.kind, api.client(), cache)
        orchestrator = BackupOrchestrator(
            tmp_path / "backup",
            [adapter],
            cache=cache,
            pool=WorkerPool(workers),
            output_format=output_format,
            array_sort=array_sort,
        )
        created.append((orchestrator, api))
        return orchestrator

    yield _make
    for orchestrator, api in created:
        orchestrator.close()
        api.close()


@pytest.fixture
def workflows(workflow_api: FakeApi, make_orchestrator) -> BackupOrchestrator:
    return make_orchestrator(workflow_api, WorkflowsAdapter)
