from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from cloudbox.core.security import VerifiedIdentity
from cloudbox.api.deps import get_current_identity, get_folder_service
from cloudbox.schemas.folder import Folder, FolderCreate, FolderUpdate
from cloudbox.services.folder import FolderService

router = APIRouter()


@router.get("", response_model=List[Folder])
async def list_folders(
    parent: Optional[int] = Query(None, description="Parent folder id; omit for top level"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    folder_service: FolderService = Depends(get_folder_service)
):
    """List the caller's folders under a parent, sorted by name"""
    return await folder_service.list_folders(identity, parent)


@router.post("", response_model=Folder, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_data: FolderCreate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    folder_service: FolderService = Depends(get_folder_service)
):
    return await folder_service.create_folder(identity, folder_data)


@router.patch("/{folder_id}", response_model=Folder)
async def update_folder(
    folder_id: int,
    folder_data: FolderUpdate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    folder_service: FolderService = Depends(get_folder_service)
):
    """Rename or move a folder"""
    return await folder_service.update_folder(folder_id, identity, folder_data)


@router.delete("/{folder_id}")
async def delete_folder(
    folder_id: int,
    identity: VerifiedIdentity = Depends(get_current_identity),
    folder_service: FolderService = Depends(get_folder_service)
):
    """Delete a folder and everything in it"""
    await folder_service.delete_folder(folder_id, identity)
    return {"message": "Folder deleted successfully"}
