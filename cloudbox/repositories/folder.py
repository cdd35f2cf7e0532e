from typing import List, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cloudbox.core.database import utcnow
from cloudbox.models.folder import Folder


class FolderRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, folder_id: int) -> Optional[Folder]:
        """Get folder by ID"""
        query = select(Folder).filter(Folder.id == folder_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_user_folders(self, user_id: int, parent_id: Optional[int] = None) -> List[Folder]:
        """Folders of a user directly under parent_id, or top-level ones"""
        query = select(Folder).filter(Folder.user_id == user_id)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        query = query.order_by(Folder.name.asc(), Folder.id.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_ancestor_ids(self, folder_id: int) -> List[int]:
        """IDs from folder_id up to its root, folder_id first"""
        ancestors = []
        seen: Set[int] = set()
        current: Optional[int] = folder_id
        while current is not None and current not in seen:
            seen.add(current)
            ancestors.append(current)
            result = await self.db.execute(select(Folder.parent_id).filter(Folder.id == current))
            current = result.scalar_one_or_none()
        return ancestors

    async def get_descendant_ids(self, folder_id: int) -> List[int]:
        """IDs of folder_id and every folder nested below it"""
        found = [folder_id]
        seen = {folder_id}
        frontier = [folder_id]
        while frontier:
            result = await self.db.execute(select(Folder.id).filter(Folder.parent_id.in_(frontier)))
            frontier = [fid for fid in result.scalars().all() if fid not in seen]
            seen.update(frontier)
            found.extend(frontier)
        return found

    async def create(self, name: str, user_id: int, parent_id: Optional[int] = None) -> Folder:
        """Create a new folder"""
        db_folder = Folder(name=name, user_id=user_id, parent_id=parent_id)
        self.db.add(db_folder)
        await self.db.commit()
        await self.db.refresh(db_folder)
        return db_folder

    async def update(self, folder: Folder, fields: dict) -> Folder:
        """Apply name/parent_id changes"""
        for field in ("name", "parent_id"):
            if field in fields:
                setattr(folder, field, fields[field])
        folder.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(folder)
        return folder

    async def delete(self, folder: Folder):
        """Delete folder; nested folders, files and invitations go with it"""
        await self.db.delete(folder)
        await self.db.commit()
