import re
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Query, Request, UploadFile, File as FastAPIFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cloudbox.core.database import get_db
from cloudbox.core.security import VerifiedIdentity
from cloudbox.api.deps import get_current_identity, get_file_service, get_optional_identity
from cloudbox.schemas.file import File, FileShare, FileUpdate
from cloudbox.schemas.share import Share
from cloudbox.services.file import FileService
from cloudbox.services.share import ShareService

router = APIRouter()

# control characters, quotes and backslashes cannot appear in the quoted fallback
_HEADER_UNSAFE = re.compile(r'[\x00-\x1f\x7f"\\?]')


def content_disposition(disposition: str, filename: str) -> str:
    """Header value with an ASCII fallback plus the RFC 5987 UTF-8 name"""
    fallback = filename.encode("ascii", "replace").decode("ascii")
    fallback = _HEADER_UNSAFE.sub("_", fallback)
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


async def _stream_file(
    file_id: int,
    disposition: str,
    identity: Optional[VerifiedIdentity],
    file_service: FileService
) -> StreamingResponse:
    file, content = await file_service.open_file(file_id, identity)
    return StreamingResponse(
        content,
        media_type=file.mime_type,
        headers={
            "Content-Disposition": content_disposition(disposition, file.original_name),
            "Content-Length": str(file.size),
        }
    )


@router.post("/upload", response_model=File, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = FastAPIFile(...),
    folder_id: Optional[int] = Form(None, alias="folderId"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Upload a new file"""
    try:
        return await file_service.upload_file(file, identity, folder_id)
    finally:
        await file.close()


@router.get("", response_model=List[File])
async def list_files(
    folder: Optional[int] = Query(None, description="Folder id; omit for top level"),
    identity: VerifiedIdentity = Depends(get_current_identity),
    file_service: FileService = Depends(get_file_service)
):
    """List the caller's files in a folder, most recently updated first"""
    return await file_service.list_files(identity, folder)


@router.get("/recent", response_model=List[File])
async def list_recent_files(
    limit: int = Query(10, ge=1, le=100),
    identity: VerifiedIdentity = Depends(get_current_identity),
    file_service: FileService = Depends(get_file_service)
):
    return await file_service.list_recent_files(identity, limit)


@router.get("/{file_id}", response_model=File)
async def get_file(
    file_id: int,
    identity: Optional[VerifiedIdentity] = Depends(get_optional_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Get file metadata"""
    return await file_service.get_file(file_id, identity)


@router.patch("/{file_id}", response_model=File)
async def update_file(
    file_id: int,
    file_update: FileUpdate,
    identity: VerifiedIdentity = Depends(get_current_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Rename, move, or stop sharing a file"""
    return await file_service.update_file(file_id, identity, file_update)


@router.get("/{file_id}/download")
async def download_file(
    file_id: int,
    identity: Optional[VerifiedIdentity] = Depends(get_optional_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Download file content"""
    return await _stream_file(file_id, "attachment", identity, file_service)


@router.get("/{file_id}/view")
async def view_file(
    file_id: int,
    identity: Optional[VerifiedIdentity] = Depends(get_optional_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Serve file content for in-browser preview"""
    return await _stream_file(file_id, "inline", identity, file_service)


@router.post("/{file_id}/share", response_model=FileShare)
async def create_share_link(
    file_id: int,
    request: Request,
    identity: VerifiedIdentity = Depends(get_current_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Create a public link for a file, replacing any previous one"""
    return await file_service.create_share_link(file_id, identity, str(request.base_url))


@router.get("/{file_id}/shares", response_model=List[Share])
async def list_file_shares(
    file_id: int,
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Invitations recorded for a file"""
    return await ShareService(db).list_file_shares(file_id, identity)


@router.delete("/{file_id}")
async def delete_file(
    file_id: int,
    identity: VerifiedIdentity = Depends(get_current_identity),
    file_service: FileService = Depends(get_file_service)
):
    """Delete file"""
    await file_service.delete_file(file_id, identity)
    return {"message": "File deleted successfully"}
