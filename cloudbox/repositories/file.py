from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from cloudbox.core.database import utcnow
from cloudbox.models.file import File


class FileRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        name: str,
        original_name: str,
        mime_type: str,
        size: int,
        path: str,
        user_id: int,
        folder_id: Optional[int] = None
    ) -> File:
        """Create a new file record"""
        db_file = File(
            name=name,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
            path=path,
            user_id=user_id,
            folder_id=folder_id,
            is_public=False
        )
        self.db.add(db_file)
        await self.db.commit()
        await self.db.refresh(db_file)
        return db_file

    async def get_by_id(self, file_id: int) -> Optional[File]:
        """Get file by ID"""
        query = select(File).filter(File.id == file_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_share_token(self, share_token: str) -> Optional[File]:
        """Get a publicly shared file by its token"""
        query = select(File).filter(File.share_token == share_token, File.is_public.is_(True))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_user_files(self, user_id: int, folder_id: Optional[int] = None) -> List[File]:
        """Files of a user in folder_id, or at the top level, newest first"""
        query = select(File).filter(File.user_id == user_id)
        if folder_id is None:
            query = query.filter(File.folder_id.is_(None))
        else:
            query = query.filter(File.folder_id == folder_id)
        query = query.order_by(File.updated_at.desc(), File.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_recent_files(self, user_id: int, limit: int = 10) -> List[File]:
        """Most recently updated files of a user across all folders"""
        query = (
            select(File)
            .filter(File.user_id == user_id)
            .order_by(File.updated_at.desc(), File.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_files_in_folders(self, folder_ids: Iterable[int]) -> List[File]:
        folder_ids = list(folder_ids)
        if not folder_ids:
            return []
        query = select(File).filter(File.folder_id.in_(folder_ids))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, file: File, fields: dict) -> File:
        """Rename, move, or revoke public access"""
        if "original_name" in fields:
            file.original_name = fields["original_name"]
        if "folder_id" in fields:
            file.folder_id = fields["folder_id"]
        if fields.get("is_public") is False:
            file.is_public = False
            file.share_token = None
        file.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(file)
        return file

    async def set_share_token(self, file: File, share_token: str) -> bool:
        """Store a new share token and mark the file public; False if the token is taken"""
        file.share_token = share_token
        file.is_public = True
        file.updated_at = utcnow()
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self.db.refresh(file)
            return False

        await self.db.refresh(file)
        return True

    async def delete(self, file: File):
        """Delete file record"""
        await self.db.delete(file)
        await self.db.commit()
