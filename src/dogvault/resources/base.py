"""ResourceAdapter Protocol and the generic HTTP-backed implementation."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from dogvault.api.client import ApiClient
from dogvault.core.errors import (
    BadRequestError,
    EnvelopeMismatchError,
    NotFoundError,
    UpstreamError,
)
from dogvault.core.models import ApiResult, ResourceKind, ResultStatus
from dogvault.core.sanitize import sanitize_for_compare
from dogvault.engine.cache import ResponseCache

log = logging.getLogger(__name__)


@runtime_checkable
class ResourceAdapter(Protocol):
    """Contract between the orchestrator and one resource kind."""

    @property
    def kind(self) -> ResourceKind:
        """Kind configuration: paths, id field, envelope, banlist."""
        ...

    def list(self) -> list[dict]:
        """Every resource of this kind, envelope removed.

        Raises:
            UpstreamError: On any non-2xx response.
        """
        ...

    def get(self, resource_id: str) -> ApiResult:
        """Fetch one resource. 404/400 come back as NOT_FOUND/BAD_REQUEST.

        Raises:
            UpstreamError: On any other non-2xx response.
        """
        ...

    def create(self, payload: dict) -> ApiResult:
        """Create from an already-sanitized payload; invalidates the kind's cache entry."""
        ...

    def update(self, resource_id: str, payload: dict) -> ApiResult:
        """Replace (or patch) from an already-sanitized payload; invalidates the cache entry."""
        ...

    def envelope_unwrap(self, body: Any) -> dict:
        ...

    def envelope_wrap(self, resource: dict) -> Any:
        ...

    def snapshot(self, resource: dict) -> dict:
        """Snapshot form of a fetched resource: sanitized, hooked, wrapped."""
        ...


class HttpResourceAdapter:
    """ResourceAdapter driven entirely by a ResourceKind.

    Subclasses customize behaviour through post_fetch() and include_listed()
    rather than overriding the request methods.
    """

    def __init__(self, kind: ResourceKind, client: ApiClient, cache: ResponseCache) -> None:
        self._kind = kind
        self._client = client
        self._cache = cache

    @property
    def kind(self) -> ResourceKind:
        return self._kind

    # --- hooks ---

    def post_fetch(self, resource: dict) -> dict:
        """Adjust a sanitized resource before it is wrapped into a snapshot."""
        return resource

    def include_listed(self, resource: dict) -> bool:
        """Whether a listed resource belongs to this kind's backups."""
        return True

    # --- envelope ---

    def envelope_unwrap(self, body: Any) -> dict:
        key = self._kind.envelope
        if key is None:
            resource = body
        elif isinstance(body, dict) and key in body:
            resource = body[key]
        else:
            raise EnvelopeMismatchError(f"{self._kind.name}: response has no {key!r} key")
        if not isinstance(resource, dict):
            raise EnvelopeMismatchError(f"{self._kind.name}: expected an object, got {type(resource).__name__}")
        return resource

    def envelope_wrap(self, resource: dict) -> Any:
        key = self._kind.envelope
        if key is None:
            return resource
        return {key: resource}

    def _unwrap_list(self, body: Any) -> list[dict]:
        key = self._kind.list_key
        items = body
        if key is not None:
            if not isinstance(body, dict) or key not in body:
                raise EnvelopeMismatchError(f"{self._kind.name}: list response has no {key!r} key")
            items = body[key]
        if not isinstance(items, list):
            raise EnvelopeMismatchError(f"{self._kind.name}: expected a list, got {type(items).__name__}")
        return [item for item in items if isinstance(item, dict)]

    def snapshot(self, resource: dict) -> dict:
        sanitized = sanitize_for_compare(resource, self._kind.banlist)
        return self.envelope_wrap(self.post_fetch(sanitized))

    # --- operations ---

    def list(self) -> list[dict]:
        try:
            body = self._client.get(self._kind.collection_path)
        except (NotFoundError, BadRequestError) as e:
            raise UpstreamError(f"Listing {self._kind.name} failed: {e}", status_code=e.status_code) from e
        resources = [r for r in self._unwrap_list(body) if self.include_listed(r)]
        log.debug("Listed %d %s", len(resources), self._kind.name)
        return resources

    def get(self, resource_id: str) -> ApiResult:
        return self._call("GET", self._kind.member_path(resource_id))

    def create(self, payload: dict) -> ApiResult:
        result = self._call("POST", self._kind.collection_path, self.envelope_wrap(payload))
        if result.ok:
            self._cache.invalidate(self._kind.name)
        return result

    def update(self, resource_id: str, payload: dict) -> ApiResult:
        method = "PATCH" if self._kind.partial_update else "PUT"
        result = self._call(method, self._kind.member_path(resource_id), self.envelope_wrap(payload))
        if result.ok:
            self._cache.invalidate(self._kind.name)
        return result

    def _call(self, method: str, path: str, body: Any = None) -> ApiResult:
        try:
            raw = self._client.request(method, path, json=body)
        except NotFoundError as e:
            return ApiResult(ResultStatus.NOT_FOUND, message=str(e))
        except BadRequestError as e:
            return ApiResult(ResultStatus.BAD_REQUEST, message=str(e))
        resource = self.envelope_unwrap(raw) if raw else {}
        return ApiResult(ResultStatus.OK, resource=resource)
