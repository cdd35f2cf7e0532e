from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.database import get_db
from cloudbox.core.security import VerifiedIdentity
from cloudbox.api.deps import get_current_identity
from cloudbox.schemas.user import User, UserRegister, UserUpdate
from cloudbox.services.auth import AuthService

router = APIRouter()


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def register_user(
    response: Response,
    user_data: Optional[UserRegister] = None,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Create the caller's user record if it does not exist yet"""
    auth_service = AuthService(db)
    user, created = await auth_service.register(identity, user_data or UserRegister())
    if not created:
        response.status_code = status.HTTP_200_OK
    return user


@router.get("/profile", response_model=User)
async def get_profile(
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Get current user profile"""
    return await AuthService(db).get_profile(identity)


@router.patch("/profile", response_model=User)
async def update_profile(
    user_update: UserUpdate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Update current user profile"""
    return await AuthService(db).update_profile(identity, user_update)
