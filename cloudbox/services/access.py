"""
Authorization decisions for files and folders.

Reads of a file are allowed to anyone when the file has been publicly
shared (``is_public`` with a share token).  Every other operation needs a
verified identity that resolves to the owning user.
"""
import logging
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.security import VerifiedIdentity
from cloudbox.models.file import File
from cloudbox.models.folder import Folder
from cloudbox.models.user import User
from cloudbox.repositories.user import UserRepository
from cloudbox.utils.exceptions import AuthenticationError, AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


class AccessGate:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def resolve_user(self, identity: Optional[VerifiedIdentity]) -> Optional[User]:
        if identity is None:
            return None
        return await self.user_repo.get_by_uid(identity.uid)

    async def require_user(self, identity: Optional[VerifiedIdentity]) -> User:
        """The caller's user record; 401 without identity, 404 if never registered"""
        if identity is None:
            raise AuthenticationError()
        user = await self.resolve_user(identity)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def authorize_file_read(self, file: File, identity: Optional[VerifiedIdentity]) -> Optional[User]:
        """Allow download/view; returns the owner when access came from ownership"""
        if file.is_public and file.share_token:
            return None

        if identity is None:
            raise AuthorizationError("Access denied - authentication required")

        user = await self.resolve_user(identity)
        if not user or file.user_id != user.id:
            logger.info(f"Denied read of file {file.id} to {identity.uid}")
            raise AuthorizationError("Access denied - you don't own this file")
        return user

    async def authorize_owner(
        self,
        resource: Union[File, Folder],
        identity: Optional[VerifiedIdentity]
    ) -> User:
        """Writes and deletes, and every folder operation, are owner-only"""
        if identity is None:
            raise AuthenticationError()

        user = await self.resolve_user(identity)
        if not user or resource.user_id != user.id:
            logger.info(f"Denied write on {type(resource).__name__.lower()} {resource.id} to {identity.uid}")
            raise AuthorizationError()
        return user
