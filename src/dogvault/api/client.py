"""HTTP client for the platform REST API.

Maps response statuses onto the error taxonomy: 404 -> NotFoundError,
400 -> BadRequestError, any other non-2xx or transport failure ->
UpstreamError. Successful responses return the decoded JSON body.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from dogvault.core.config import api_base_url
from dogvault.core.errors import BadRequestError, NotFoundError, UpstreamError

log = logging.getLogger(__name__)

_USER_AGENT = "dogvault"


def _get_secret(name: str) -> str | None:
    """Retrieve a credential from the system keyring."""
    try:
        import keyring

        return keyring.get_password("dogvault", name)
    except Exception:
        log.debug("Keyring lookup for %s failed", name, exc_info=True)
        return None


def resolve_credentials(config: dict) -> tuple[str | None, str | None]:
    """Return (api_key, app_key): environment > config > keyring."""
    api_key = os.environ.get("DD_API_KEY") or config.get("api_key") or _get_secret("api_key")
    app_key = os.environ.get("DD_APP_KEY") or config.get("app_key") or _get_secret("app_key")
    return api_key, app_key


class ApiClient:
    """Thin wrapper around httpx.Client with auth headers and status mapping."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        app_key: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }
        if api_key:
            headers["DD-API-KEY"] = api_key
        if app_key:
            headers["DD-APPLICATION-KEY"] = app_key
        self._base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: dict, transport: httpx.BaseTransport | None = None) -> ApiClient:
        api_key, app_key = resolve_credentials(config)
        if not api_key or not app_key:
            log.warning("API or application key not configured; requests will likely fail")
        return cls(
            api_base_url(config),
            api_key=api_key,
            app_key=app_key,
            timeout=float(config.get("timeout", 30.0)),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def request(self, method: str, path: str, json: Any = None) -> Any:
        """Send a request and return the decoded body ({} when empty).

        Raises:
            NotFoundError: On 404.
            BadRequestError: On 400.
            UpstreamError: On any other non-2xx status, transport failure or
                undecodable body.
        """
        label = f"{method} {path}"
        try:
            resp = self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{label} failed: {e}") from e

        status = resp.status_code
        log.debug("%s -> %d", label, status)
        if status == 404:
            raise NotFoundError(f"{label} returned 404", status_code=status)
        if status == 400:
            raise BadRequestError(f"{label} returned 400: {resp.text[:200]}", status_code=status)
        if not 200 <= status < 300:
            raise UpstreamError(f"{label} failed with error {status}", status_code=status)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"{label} returned invalid JSON: {e}", status_code=status) from e

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def post(self, path: str, json: Any) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Any) -> Any:
        return self.request("PATCH", path, json=json)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
