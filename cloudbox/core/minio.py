import logging
import tempfile
from typing import AsyncIterator

from minio import Minio
from minio.error import S3Error
from starlette.concurrency import run_in_threadpool, iterate_in_threadpool

from cloudbox.core.storage import BlobStore, StoredBlob, generate_storage_name, sanitize_filename
from cloudbox.utils.exceptions import BlobNotFoundError, FileOperationError, FileTooLargeError

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject", "NotFound")
# uploads larger than this spill from memory to a temp file before transfer
SPOOL_MAX_MEMORY = 1024 * 1024


class MinioBlobStore(BlobStore):
    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        secure: bool = False,
        chunk_size: int = 64 * 1024,
    ):
        self.client = Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure
        )
        self.bucket_name = bucket_name
        self.chunk_size = chunk_size

    async def ensure_ready(self):
        """Ensure the bucket exists, create if not"""
        try:
            if not await run_in_threadpool(self.client.bucket_exists, self.bucket_name):
                await run_in_threadpool(self.client.make_bucket, self.bucket_name)
        except S3Error as e:
            logger.error(f"Error ensuring bucket exists: {e}")
            raise FileOperationError("Storage bucket unavailable")

    async def put(self, chunks, suggested_name, content_type="application/octet-stream", max_size=None):
        object_name = generate_storage_name(suggested_name)
        size = 0
        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as spool:
            async for chunk in chunks:
                size += len(chunk)
                if max_size is not None and size > max_size:
                    raise FileTooLargeError(f"File exceeds the {max_size} byte limit")
                spool.write(chunk)
            spool.seek(0)

            try:
                await run_in_threadpool(
                    self.client.put_object,
                    self.bucket_name,
                    object_name,
                    spool,
                    size,
                    content_type=content_type,
                    metadata={"original-filename": sanitize_filename(suggested_name)}
                )
            except S3Error as e:
                logger.error(f"Error uploading object {object_name}: {e}")
                raise FileOperationError("Failed to store file")

        return StoredBlob(name=object_name, path=object_name, size=size)

    async def stream(self, path: str) -> AsyncIterator[bytes]:
        try:
            response = await run_in_threadpool(self.client.get_object, self.bucket_name, path)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                raise BlobNotFoundError()
            logger.error(f"Error downloading object {path}: {e}")
            raise FileOperationError("Failed to read file")
        return self._iter_response(response)

    async def _iter_response(self, response) -> AsyncIterator[bytes]:
        try:
            async for chunk in iterate_in_threadpool(response.stream(self.chunk_size)):
                yield chunk
        finally:
            response.close()
            response.release_conn()

    async def delete(self, path: str):
        """Remove an object, raising BlobNotFoundError if it is absent.

        remove_object succeeds silently for missing keys, so existence is
        checked first.  The check and the removal are not atomic: an object
        removed concurrently in between is reported as deleted.
        """
        if not await self.exists(path):
            raise BlobNotFoundError()
        try:
            await run_in_threadpool(self.client.remove_object, self.bucket_name, path)
        except S3Error as e:
            logger.error(f"Error deleting object {path}: {e}")
            raise FileOperationError("Failed to delete file")

    async def exists(self, path: str) -> bool:
        """Check if an object exists in the bucket"""
        try:
            await run_in_threadpool(self.client.stat_object, self.bucket_name, path)
            return True
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                return False
            logger.error(f"Error checking object {path}: {e}")
            raise FileOperationError("Failed to reach storage")
