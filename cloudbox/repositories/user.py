from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from cloudbox.core.database import utcnow
from cloudbox.core.security import VerifiedIdentity
from cloudbox.models.user import User
from cloudbox.schemas.user import UserRegister, UserUpdate
from cloudbox.utils.exceptions import ConflictError, ValidationError


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_uid(self, uid: str) -> Optional[User]:
        """Get user by identity-provider subject id"""
        query = select(User).filter(User.uid == uid)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create(self, identity: VerifiedIdentity, user_data: UserRegister) -> Tuple[User, bool]:
        """Return the user for this identity, creating it on first login"""
        user = await self.get_by_uid(identity.uid)
        if user:
            return user, False

        if not identity.email:
            raise ValidationError("Identity token carries no email address")

        db_user = User(
            uid=identity.uid,
            email=identity.email,
            display_name=user_data.display_name or identity.name,
            photo_url=user_data.photo_url or identity.picture,
        )
        self.db.add(db_user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # lost a race with a concurrent first login, or the email is taken
            user = await self.get_by_uid(identity.uid)
            if user:
                return user, False
            raise ConflictError("A user with this email already exists")

        await self.db.refresh(db_user)
        return db_user, True

    async def update(self, user: User, user_data: UserUpdate) -> User:
        """Update profile fields"""
        update_data = user_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(user, field, value)
        user.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(user)
        return user
