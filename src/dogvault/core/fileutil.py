"""File system utilities: atomic writes, secure directories, id validation."""

from __future__ import annotations

import contextlib
import logging
import os
import platform
import re
import tempfile
from pathlib import Path

from dogvault.core.errors import LocalIOError

log = logging.getLogger(__name__)

FILE_MODE = 0o600
DIR_MODE = 0o700

_IS_WINDOWS = platform.system() == "Windows"

# Ids become file names; anything outside this set could escape the kind dir.
_SAFE_ID = re.compile(r"^[\w\-.:@]+$")


def is_safe_resource_id(resource_id: str) -> bool:
    """True if *resource_id* can be used as a file name inside a kind directory.

    Rejects path separators, traversal, hidden names and empty ids rather
    than rewriting them, since the file name must map back to the remote id.
    """
    if not resource_id or resource_id.startswith("."):
        return False
    if ".." in resource_id:
        return False
    return bool(_SAFE_ID.match(resource_id))


def ensure_dir(path: Path) -> Path:
    """Create directory with secure permissions if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    if not _IS_WINDOWS:
        path.chmod(DIR_MODE)
    return path


def ensure_file_permissions(path: Path) -> None:
    """Set file permissions to owner-only read/write."""
    if not _IS_WINDOWS and path.exists():
        path.chmod(FILE_MODE)


def atomic_write(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Write content to file atomically via temp file + rename.

    Ensures the file is never partially written on crash.

    Raises:
        LocalIOError: If the directory or file cannot be written.
    """
    try:
        ensure_dir(path.parent)

        # Temp file in the same directory so the rename stays on one FS
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".tmp_",
            suffix=path.suffix,
        )
    except OSError as e:
        raise LocalIOError(f"Cannot write {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
        os.replace(tmp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise LocalIOError(f"Cannot write {path}: {e}") from e
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise

    ensure_file_permissions(path)


def read_text(path: Path, encoding: str = "utf-8") -> str:
    """Read a file, converting OS and decoding errors into LocalIOError."""
    try:
        return path.read_text(encoding=encoding)
    except OSError as e:
        raise LocalIOError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise LocalIOError(f"Cannot decode {path} as {encoding}: {e}") from e
