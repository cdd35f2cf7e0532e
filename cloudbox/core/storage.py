"""
Blob storage for uploaded file content.

Blobs are written under generated names (``<millis>-<random>-<sanitized name>``)
so the client-supplied filename never becomes the storage key.  ``put``
consumes the upload as a stream of chunks and gives up as soon as the running
size passes the cap, before the body has been fully persisted.
"""
import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import anyio

from cloudbox.core.security import random_token
from cloudbox.utils.exceptions import BlobNotFoundError, FileOperationError, FileTooLargeError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(filename: Optional[str]) -> str:
    """Reduce a client-supplied filename to a safe basename"""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    if not name:
        name = "file"
    return name[-MAX_NAME_LENGTH:]


def generate_storage_name(filename: Optional[str]) -> str:
    """Generate a collision-resistant storage name for an upload"""
    return f"{int(time.time() * 1000)}-{random_token()}-{sanitize_filename(filename)}"


@dataclass
class StoredBlob:
    name: str
    path: str
    size: int


class BlobStore:
    """Interface shared by the storage backends"""

    chunk_size = 64 * 1024

    async def ensure_ready(self):
        pass

    async def put(
        self,
        chunks: AsyncIterator[bytes],
        suggested_name: Optional[str],
        content_type: str = "application/octet-stream",
        max_size: Optional[int] = None,
    ) -> StoredBlob:
        raise NotImplementedError

    async def stream(self, path: str) -> AsyncIterator[bytes]:
        """Return an async iterator over the blob; raises BlobNotFoundError first if missing"""
        raise NotImplementedError

    async def delete(self, path: str):
        raise NotImplementedError

    async def exists(self, path: str) -> bool:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Stores blobs as plain files in one upload directory"""

    def __init__(self, root: str, chunk_size: int = 64 * 1024):
        self.root = Path(root).resolve()
        self.chunk_size = chunk_size

    async def ensure_ready(self):
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target.parent != self.root:
            # keys never contain directories; anything else is not ours
            raise BlobNotFoundError()
        return target

    def local_path(self, path: str) -> Path:
        """Absolute filesystem path of an existing blob"""
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFoundError()
        return target

    async def put(self, chunks, suggested_name, content_type="application/octet-stream", max_size=None):
        await self.ensure_ready()
        name = generate_storage_name(suggested_name)
        target = self.root / name
        partial = self.root / f".{name}.part"
        size = 0
        try:
            async with await anyio.open_file(partial, "wb") as out:
                async for chunk in chunks:
                    size += len(chunk)
                    if max_size is not None and size > max_size:
                        raise FileTooLargeError(f"File exceeds the {max_size} byte limit")
                    await out.write(chunk)
            os.replace(partial, target)
        except FileTooLargeError:
            partial.unlink(missing_ok=True)
            raise
        except OSError as e:
            partial.unlink(missing_ok=True)
            logger.error(f"Error writing blob {name}: {e}")
            raise FileOperationError("Failed to store file")

        logger.debug(f"Stored blob {name} ({size} bytes)")
        return StoredBlob(name=name, path=name, size=size)

    async def stream(self, path: str) -> AsyncIterator[bytes]:
        target = self.local_path(path)
        return self._iter_file(target)

    async def _iter_file(self, target: Path) -> AsyncIterator[bytes]:
        async with await anyio.open_file(target, "rb") as f:
            while True:
                chunk = await f.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk

    async def delete(self, path: str):
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            raise BlobNotFoundError()
        except OSError as e:
            logger.error(f"Error deleting blob {path}: {e}")
            raise FileOperationError("Failed to delete file")

    async def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except BlobNotFoundError:
            return False


def build_blob_store(settings) -> BlobStore:
    if settings.STORAGE_BACKEND == "minio":
        from cloudbox.core.minio import MinioBlobStore

        return MinioBlobStore(
            endpoint=settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ROOT_USER,
            secret_key=settings.MINIO_ROOT_PASSWORD,
            bucket_name=settings.MINIO_BUCKET_NAME,
            secure=settings.MINIO_SECURE,
            chunk_size=settings.UPLOAD_CHUNK_SIZE,
        )
    return LocalBlobStore(settings.UPLOAD_DIR, chunk_size=settings.UPLOAD_CHUNK_SIZE)
