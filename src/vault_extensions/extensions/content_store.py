"""
Content store abstraction: file storage addressed by vault-relative paths.

Paths use ``/`` separators and are relative to the store root. The local
implementation keeps every path inside its root directory.
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from vault_extensions.core.exceptions import ContentPathError
from vault_extensions.core.logging.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ContentStore(Protocol):
    """File capability exposed by the host application."""

    async def exists(self, path: str) -> bool: ...

    async def is_file(self, path: str) -> bool: ...

    async def is_folder(self, path: str) -> bool: ...

    async def read(self, path: str) -> bytes: ...

    async def write(self, path: str, data: bytes) -> None:
        """Create or replace a file, creating parent folders as needed."""
        ...

    async def delete(self, path: str) -> None:
        """Delete a file; deleting a missing file is not an error."""
        ...

    async def list_children(self, path: str) -> list[str]: ...


def normalize_content_path(path: str) -> str:
    """Normalize a vault-relative path, rejecting absolute paths and traversal."""
    raw = (path or "").strip().replace("\\", "/")
    if not raw:
        raise ContentPathError(f"Invalid content path: {path!r}")
    posix_path = PurePosixPath(raw)
    if posix_path.is_absolute() or ".." in posix_path.parts:
        raise ContentPathError(f"Invalid content path: {path}")
    normalized = str(posix_path).lstrip("/")
    if normalized in {"", "."}:
        raise ContentPathError(f"Invalid content path: {path}")
    return normalized


class LocalContentStore:
    """Content store backed by a directory on the local filesystem."""

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        normalized = normalize_content_path(path)
        target = (self._root / normalized).resolve()
        if target != self._root and self._root not in target.parents:
            raise ContentPathError(f"Path is outside of the content root: {path}")
        return target

    def _resolve_folder(self, path: str) -> Path:
        if path.strip() in {"", ".", "/"}:
            return self._root
        return self._resolve(path)

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    async def is_file(self, path: str) -> bool:
        return self._resolve(path).is_file()

    async def is_folder(self, path: str) -> bool:
        return self._resolve_folder(path).is_dir()

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        return await asyncio.to_thread(target.read_bytes)

    async def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(self._write_sync, target, data)

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            logger.debug("Delete skipped, file not present", data={"path": path})
            return
        await asyncio.to_thread(target.unlink, True)

    async def list_children(self, path: str) -> list[str]:
        folder = self._resolve_folder(path)
        if not folder.is_dir():
            return []
        return sorted(
            child.relative_to(self._root).as_posix() for child in folder.iterdir()
        )

    @staticmethod
    def _write_sync(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
