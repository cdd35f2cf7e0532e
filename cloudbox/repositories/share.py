from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cloudbox.models.share import Share
from cloudbox.schemas.share import ShareCreate, ShareStatus


class ShareRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, share_data: ShareCreate, shared_by_user_id: int) -> Share:
        """Record an invitation"""
        share = Share(
            file_id=share_data.file_id,
            shared_by_user_id=shared_by_user_id,
            shared_with_email=str(share_data.shared_with_email).lower(),
            permission=share_data.permission.value,
            status=ShareStatus.PENDING.value
        )
        self.db.add(share)
        await self.db.commit()
        await self.db.refresh(share)
        return share

    async def get_by_user(self, user_id: int) -> List[Share]:
        """Invitations sent by a user, newest first"""
        stmt = (
            select(Share)
            .where(Share.shared_by_user_id == user_id)
            .order_by(Share.created_at.desc(), Share.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_file(self, file_id: int) -> List[Share]:
        """Invitations for one file, newest first"""
        stmt = (
            select(Share)
            .where(Share.file_id == file_id)
            .order_by(Share.created_at.desc(), Share.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
