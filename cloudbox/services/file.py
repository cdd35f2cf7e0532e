import logging
from typing import AsyncIterator, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.config import Settings
from cloudbox.core.redis import RedisClient, share_cache_key
from cloudbox.core.security import SHARE_TOKEN_LENGTH, VerifiedIdentity, random_token
from cloudbox.core.storage import BlobStore
from cloudbox.models.file import File
from cloudbox.repositories.file import FileRepository
from cloudbox.repositories.folder import FolderRepository
from cloudbox.schemas.file import FileShare, FileUpdate, PublicFile, File as FileSchema
from cloudbox.services.access import AccessGate
from cloudbox.utils.exceptions import (
    AuthorizationError,
    BlobNotFoundError,
    FileOperationError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SHARE_TOKEN_ATTEMPTS = 5


class FileService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore, cache: RedisClient, settings: Settings):
        self.file_repo = FileRepository(db)
        self.folder_repo = FolderRepository(db)
        self.gate = AccessGate(db)
        self.blob_store = blob_store
        self.cache = cache
        self.settings = settings

    async def _get_file(self, file_id: int) -> File:
        file = await self.file_repo.get_by_id(file_id)
        if not file:
            raise NotFoundError("File not found")
        return file

    async def _check_target_folder(self, folder_id: Optional[int], user_id: int):
        if folder_id is None:
            return
        folder = await self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFoundError("Folder not found")
        if folder.user_id != user_id:
            raise AuthorizationError()

    async def _read_chunks(self, upload: UploadFile) -> AsyncIterator[bytes]:
        while True:
            chunk = await upload.read(self.settings.UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

    async def upload_file(
        self,
        upload: UploadFile,
        identity: VerifiedIdentity,
        folder_id: Optional[int] = None
    ) -> File:
        """Write the blob first, then the catalog row"""
        user = await self.gate.require_user(identity)
        await self._check_target_folder(folder_id, user.id)

        original_name = (upload.filename or "").strip()
        if not original_name:
            raise ValidationError("No file uploaded")

        blob = await self.blob_store.put(
            self._read_chunks(upload),
            original_name,
            upload.content_type or "application/octet-stream",
            max_size=self.settings.MAX_FILE_SIZE_BYTES
        )

        # a failure from here on leaves an orphaned blob, never a row without bytes
        db_file = await self.file_repo.create(
            name=blob.name,
            original_name=original_name,
            mime_type=upload.content_type or "application/octet-stream",
            size=blob.size,
            path=blob.path,
            user_id=user.id,
            folder_id=folder_id
        )
        logger.info(f"User {user.id} uploaded file {db_file.id} ({blob.size} bytes)")
        return db_file

    async def list_files(self, identity: VerifiedIdentity, folder_id: Optional[int] = None) -> List[File]:
        user = await self.gate.require_user(identity)
        return await self.file_repo.get_user_files(user.id, folder_id)

    async def list_recent_files(self, identity: VerifiedIdentity, limit: int = 10) -> List[File]:
        user = await self.gate.require_user(identity)
        return await self.file_repo.get_recent_files(user.id, limit)

    async def get_file(self, file_id: int, identity: Optional[VerifiedIdentity]) -> File:
        """File metadata, subject to the read rule"""
        file = await self._get_file(file_id)
        await self.gate.authorize_file_read(file, identity)
        return file

    async def open_file(
        self,
        file_id: int,
        identity: Optional[VerifiedIdentity]
    ) -> Tuple[File, AsyncIterator[bytes]]:
        """Authorize a read and open the blob for streaming"""
        file = await self.get_file(file_id, identity)
        try:
            content = await self.blob_store.stream(file.path)
        except BlobNotFoundError:
            logger.error(f"Blob {file.path} of file {file.id} is missing")
            raise
        return file, content

    async def update_file(self, file_id: int, identity: VerifiedIdentity, file_data: FileUpdate) -> File:
        file = await self._get_file(file_id)
        user = await self.gate.authorize_owner(file, identity)

        fields = file_data.model_dump(exclude_unset=True)
        if fields.get("original_name") is None:
            fields.pop("original_name", None)
        if "folder_id" in fields:
            await self._check_target_folder(fields["folder_id"], user.id)

        old_token = file.share_token
        updated = await self.file_repo.update(file, fields)
        if old_token:
            # cached public metadata is stale after any change
            await self.cache.delete(share_cache_key(old_token))
            if updated.share_token != old_token:
                logger.info(f"Public link of file {file.id} revoked")
        return updated

    async def delete_file(self, file_id: int, identity: VerifiedIdentity):
        """Remove the blob, then the catalog row"""
        file = await self._get_file(file_id)
        user = await self.gate.authorize_owner(file, identity)

        try:
            await self.blob_store.delete(file.path)
        except BlobNotFoundError:
            logger.warning(f"Blob {file.path} of file {file.id} was already gone; removing record")

        share_token = file.share_token
        await self.file_repo.delete(file)
        if share_token:
            await self.cache.delete(share_cache_key(share_token))
        logger.info(f"User {user.id} deleted file {file_id}")

    async def delete_blobs(self, files: List[File]) -> List[File]:
        """Delete the blobs of files about to lose their rows.

        Returns the files whose blobs are gone.  On a storage failure the rows
        of already-removed blobs are deleted before the error propagates, so
        no row is left pointing at missing bytes.
        """
        removed = []
        for file in files:
            try:
                await self.blob_store.delete(file.path)
            except BlobNotFoundError:
                logger.warning(f"Blob {file.path} of file {file.id} was already gone")
            except FileOperationError:
                for gone in removed:
                    await self.file_repo.delete(gone)
                raise
            removed.append(file)

        tokens = [share_cache_key(f.share_token) for f in removed if f.share_token]
        if tokens:
            await self.cache.delete(*tokens)
        return removed

    async def create_share_link(self, file_id: int, identity: VerifiedIdentity, base_url: str) -> FileShare:
        """Issue a fresh public token; any previous link stops working"""
        file = await self._get_file(file_id)
        await self.gate.authorize_owner(file, identity)

        old_token = file.share_token
        for _ in range(SHARE_TOKEN_ATTEMPTS):
            share_token = random_token(SHARE_TOKEN_LENGTH)
            if await self.file_repo.set_share_token(file, share_token):
                break
        else:
            raise FileOperationError("Could not generate a unique share token")

        if old_token:
            await self.cache.delete(share_cache_key(old_token))
        logger.info(f"Issued share link for file {file.id}")

        base_url = (self.settings.PUBLIC_BASE_URL or base_url).rstrip("/")
        return FileShare(
            share_url=f"{base_url}/share/{share_token}",
            share_token=share_token,
            file=FileSchema.model_validate(file)
        )

    async def get_shared_file(self, share_token: str) -> PublicFile:
        """Metadata of a publicly shared file"""
        cache_key = share_cache_key(share_token)
        cached = await self.cache.get_json(cache_key)
        if cached:
            return PublicFile.model_validate(cached)

        file = await self.file_repo.get_by_share_token(share_token)
        if not file:
            raise NotFoundError("Shared file not found")

        public = PublicFile.model_validate(file)
        await self.cache.set_json(
            cache_key,
            public.model_dump(mode="json", by_alias=True),
            expire=self.settings.SHARE_CACHE_TTL_SECONDS
        )
        return public
