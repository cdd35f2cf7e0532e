from typing import Optional
from datetime import datetime
from pydantic import Field, field_validator

from cloudbox.schemas.base import CamelModel


class FileUpdate(CamelModel):
    """Rename, move, or stop public sharing of a file"""
    original_name: Optional[str] = Field(None, min_length=1, max_length=255)
    folder_id: Optional[int] = None
    is_public: Optional[bool] = None

    @field_validator("original_name")
    @classmethod
    def printable_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if any(ord(c) < 0x20 or ord(c) == 0x7f for c in v):
            raise ValueError("File name must not contain control characters")
        if not v.strip():
            raise ValueError("File name must not be empty")
        return v

    @field_validator("is_public")
    @classmethod
    def only_revoke(cls, v: Optional[bool]) -> Optional[bool]:
        if v:
            raise ValueError("Use the share endpoint to make a file public")
        return v


class File(CamelModel):
    id: int
    name: str
    original_name: str
    mime_type: str
    size: int
    user_id: int
    folder_id: Optional[int] = None
    is_public: bool
    share_token: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PublicFile(CamelModel):
    """What an anonymous holder of a share link gets to see"""
    id: int
    original_name: str
    mime_type: str
    size: int
    is_public: bool
    share_token: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FileShare(CamelModel):
    share_url: str
    share_token: str
    file: File
