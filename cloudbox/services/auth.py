import logging
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.security import VerifiedIdentity
from cloudbox.models.user import User
from cloudbox.repositories.user import UserRepository
from cloudbox.schemas.user import UserRegister, UserUpdate
from cloudbox.services.access import AccessGate

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)
        self.gate = AccessGate(db)

    async def register(self, identity: VerifiedIdentity, user_data: UserRegister) -> Tuple[User, bool]:
        """Create the user record on first login; later calls return it unchanged"""
        user, created = await self.user_repo.get_or_create(identity, user_data)
        if created:
            logger.info(f"Registered user {user.id} for subject {identity.uid}")
        return user, created

    async def get_profile(self, identity: VerifiedIdentity) -> User:
        return await self.gate.require_user(identity)

    async def update_profile(self, identity: VerifiedIdentity, user_data: UserUpdate) -> User:
        user = await self.gate.require_user(identity)
        return await self.user_repo.update(user, user_data)
