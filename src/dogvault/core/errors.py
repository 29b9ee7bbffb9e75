"""Error taxonomy for API, envelope and local file failures."""

from __future__ import annotations


class DogvaultError(Exception):
    """Base error for dogvault operations."""


class ApiError(DogvaultError):
    """Remote API returned a non-2xx response or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ApiError):
    """Remote API returned 404: the resource was deleted upstream."""


class BadRequestError(ApiError):
    """Remote API returned 400: the resource instance is malformed or unsupported."""


class UpstreamError(ApiError):
    """Any other API failure. Fatal to the enclosing batch."""


class EnvelopeMismatchError(UpstreamError):
    """Response body is missing the wrapper key the resource kind expects."""


class LocalIOError(DogvaultError):
    """A snapshot file could not be read, parsed or written."""
