"""
Object storage interface and a filesystem-backed implementation.

Objects are addressed by (bucket, path). Paths are relative, slash separated,
and never allowed to escape the bucket directory.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncSession

from minjok.logging_config import get_logger

logger = get_logger(__name__)

ARTICLES_BUCKET = "articles"
COVERS_BUCKET = "covers"

PENDING_REMOVALS_KEY = "pending_object_removals"


class StorageError(Exception):
    """Raised when an object cannot be stored or removed."""


@dataclass(frozen=True)
class UploadedFile:
    """A file received from a client, fully read into memory."""

    file_name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_empty(self) -> bool:
        return not self.file_name or self.size == 0


def safe_file_name(name: str) -> str:
    """Strip any directory components a client may have sent."""
    cleaned = name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if cleaned in ("", ".", ".."):
        raise StorageError(f"Invalid file name: {name!r}")
    return cleaned


class ObjectStorage(ABC):
    """Abstract object store."""

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        """Store an object. Existing objects are never overwritten."""

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        ...

    @abstractmethod
    async def remove(self, bucket: str, paths: Iterable[str]) -> List[str]:
        """Delete objects, returning the paths that were actually removed."""


class LocalObjectStorage(ObjectStorage):
    """
    Stores objects under ``root/<bucket>/<path>`` on the local filesystem.

    Public URLs are ``<public_base_url>/<bucket>/<path>``; the application can
    serve them through a static mount.
    """

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir != target and bucket_dir not in target.parents:
            raise StorageError(f"Path escapes bucket: {path!r}")
        return target

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        target = self._resolve(bucket, path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(target, "xb") as fh:
                    fh.write(data)
            except FileExistsError as exc:
                raise StorageError(f"Object already exists: {bucket}/{path}") from exc
            except OSError as exc:
                raise StorageError(f"Failed to write {bucket}/{path}: {exc}") from exc

        await asyncio.to_thread(_write)
        logger.debug(
            "Stored object",
            extra={"bucket": bucket, "path": path, "size": len(data), "content_type": content_type},
        )

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{quote(bucket)}/{quote(path)}"

    async def remove(self, bucket: str, paths: Iterable[str]) -> List[str]:
        targets = [(p, self._resolve(bucket, p)) for p in paths]

        def _unlink() -> List[str]:
            removed = []
            for rel, target in targets:
                try:
                    target.unlink()
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise StorageError(f"Failed to remove {bucket}/{rel}: {exc}") from exc
                removed.append(rel)
            return removed

        removed = await asyncio.to_thread(_unlink)
        if removed:
            logger.debug("Removed objects", extra={"bucket": bucket, "count": len(removed)})
        return removed


def schedule_removal(session: AsyncSession, storage: ObjectStorage, bucket: str, paths: Iterable[str]) -> None:
    """Queue objects for removal once the session's transaction commits."""
    paths = [p for p in paths if p]
    if paths:
        session.info.setdefault(PENDING_REMOVALS_KEY, []).append((storage, bucket, paths))


def discard_pending_removals(session: AsyncSession) -> None:
    session.info.pop(PENDING_REMOVALS_KEY, None)


async def run_pending_removals(session: AsyncSession) -> None:
    """
    Remove the objects queued by a committed transaction.

    The rows are already gone at this point, so a failed removal is logged
    and leaves an unreferenced object behind.
    """
    for storage, bucket, paths in session.info.pop(PENDING_REMOVALS_KEY, []):
        try:
            await storage.remove(bucket, paths)
        except StorageError:
            logger.exception("Failed to remove objects after commit", extra={"bucket": bucket, "paths": paths})
