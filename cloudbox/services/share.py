from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.security import VerifiedIdentity
from cloudbox.models.share import Share
from cloudbox.repositories.file import FileRepository
from cloudbox.repositories.share import ShareRepository
from cloudbox.schemas.share import ShareCreate
from cloudbox.services.access import AccessGate
from cloudbox.utils.exceptions import NotFoundError, ValidationError


class ShareService:
    """Invitation ledger: records who a file was offered to, nothing more"""

    def __init__(self, db: AsyncSession):
        self.repo = ShareRepository(db)
        self.file_repo = FileRepository(db)
        self.gate = AccessGate(db)

    async def create_share(self, identity: VerifiedIdentity, share_data: ShareCreate) -> Share:
        user = await self.gate.require_user(identity)

        file = await self.file_repo.get_by_id(share_data.file_id)
        if not file:
            raise NotFoundError("File not found")
        await self.gate.authorize_owner(file, identity)

        if str(share_data.shared_with_email).lower() == user.email.lower():
            raise ValidationError("Cannot share a file with yourself")

        return await self.repo.create(share_data, user.id)

    async def list_shares(self, identity: VerifiedIdentity) -> List[Share]:
        user = await self.gate.require_user(identity)
        return await self.repo.get_by_user(user.id)

    async def list_file_shares(self, file_id: int, identity: VerifiedIdentity) -> List[Share]:
        file = await self.file_repo.get_by_id(file_id)
        if not file:
            raise NotFoundError("File not found")
        await self.gate.authorize_owner(file, identity)
        return await self.repo.get_by_file(file.id)
