from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.database import get_db
from cloudbox.core.security import IdentityVerifier, VerifiedIdentity
from cloudbox.services.file import FileService
from cloudbox.services.folder import FolderService
from cloudbox.utils.exceptions import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: IdentityVerifier = Depends(get_identity_verifier)
) -> Optional[VerifiedIdentity]:
    """Verified caller identity, or None when no token was presented"""
    if credentials is None:
        return None
    return await verifier.verify(credentials.credentials)


async def get_current_identity(
    identity: Optional[VerifiedIdentity] = Depends(get_optional_identity)
) -> VerifiedIdentity:
    if identity is None:
        raise AuthenticationError()
    return identity


def get_file_service(request: Request, db: AsyncSession = Depends(get_db)) -> FileService:
    state = request.app.state
    return FileService(db, state.blob_store, state.cache, state.settings)


def get_folder_service(
    db: AsyncSession = Depends(get_db),
    file_service: FileService = Depends(get_file_service)
) -> FolderService:
    return FolderService(db, file_service)
