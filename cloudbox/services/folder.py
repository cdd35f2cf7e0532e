import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.security import VerifiedIdentity
from cloudbox.models.folder import Folder
from cloudbox.repositories.file import FileRepository
from cloudbox.repositories.folder import FolderRepository
from cloudbox.schemas.folder import FolderCreate, FolderUpdate
from cloudbox.services.access import AccessGate
from cloudbox.services.file import FileService
from cloudbox.utils.exceptions import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class FolderService:

    def __init__(self, db: AsyncSession, file_service: FileService):
        self.repo = FolderRepository(db)
        self.file_repo = FileRepository(db)
        self.gate = AccessGate(db)
        self.file_service = file_service

    async def _get_folder(self, folder_id: int) -> Folder:
        folder = await self.repo.get_by_id(folder_id)
        if not folder:
            raise NotFoundError("Folder not found")
        return folder

    async def _check_parent(self, parent_id: Optional[int], user_id: int):
        if parent_id is None:
            return
        parent = await self.repo.get_by_id(parent_id)
        if not parent:
            raise NotFoundError("Parent folder not found")
        if parent.user_id != user_id:
            raise AuthorizationError()

    async def list_folders(self, identity: VerifiedIdentity, parent_id: Optional[int] = None) -> List[Folder]:
        user = await self.gate.require_user(identity)
        return await self.repo.get_user_folders(user.id, parent_id)

    async def create_folder(self, identity: VerifiedIdentity, folder_data: FolderCreate) -> Folder:
        user = await self.gate.require_user(identity)
        await self._check_parent(folder_data.parent_id, user.id)
        folder = await self.repo.create(folder_data.name, user.id, folder_data.parent_id)
        logger.info(f"User {user.id} created folder {folder.id}")
        return folder

    async def update_folder(self, folder_id: int, identity: VerifiedIdentity, folder_data: FolderUpdate) -> Folder:
        """Rename and/or move a folder, refusing moves that would form a cycle"""
        folder = await self._get_folder(folder_id)
        user = await self.gate.authorize_owner(folder, identity)

        fields = folder_data.model_dump(exclude_unset=True)
        if fields.get("name") is None:
            fields.pop("name", None)

        if "parent_id" in fields:
            parent_id = fields["parent_id"]
            await self._check_parent(parent_id, user.id)
            if parent_id is not None and folder.id in await self.repo.get_ancestor_ids(parent_id):
                raise ValidationError("A folder cannot be moved into itself or one of its subfolders")

        return await self.repo.update(folder, fields)

    async def delete_folder(self, folder_id: int, identity: VerifiedIdentity):
        """Delete a folder with everything below it, blobs included"""
        folder = await self._get_folder(folder_id)
        user = await self.gate.authorize_owner(folder, identity)

        subtree = await self.repo.get_descendant_ids(folder.id)
        files = await self.file_repo.get_files_in_folders(subtree)
        await self.file_service.delete_blobs(files)

        # the database cascades to sub-folders, file rows and invitations
        await self.repo.delete(folder)
        logger.info(
            f"User {user.id} deleted folder {folder_id} "
            f"({len(subtree)} folders, {len(files)} files)"
        )
