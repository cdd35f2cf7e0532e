from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.database import get_db
from cloudbox.core.security import VerifiedIdentity
from cloudbox.api.deps import get_current_identity, get_file_service
from cloudbox.schemas.file import PublicFile
from cloudbox.schemas.share import Share, ShareCreate
from cloudbox.services.file import FileService
from cloudbox.services.share import ShareService

router = APIRouter()


@router.post("/shares", response_model=Share, status_code=status.HTTP_201_CREATED)
async def create_share(
    share_data: ShareCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Record an invitation to a file"""
    return await ShareService(db).create_share(identity, share_data)


@router.get("/shares", response_model=List[Share])
async def list_shares(
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Invitations sent by the caller"""
    return await ShareService(db).list_shares(identity)


@router.get("/share/{share_token}", response_model=PublicFile)
async def get_shared_file(
    share_token: str,
    file_service: FileService = Depends(get_file_service)
):
    """Metadata of a publicly shared file; no identity needed"""
    return await file_service.get_shared_file(share_token)
