from typing import Optional
from datetime import datetime
from pydantic import Field, field_validator

from cloudbox.schemas.base import CamelModel


def check_folder_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Folder name must not be empty")
    if "/" in v:
        raise ValueError("Folder name must not contain '/'")
    return v


class FolderCreate(CamelModel):
    name: str = Field(..., max_length=255)
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, v: str) -> str:
        return check_folder_name(v)


class FolderUpdate(CamelModel):
    """Rename and/or move; an explicit null parentId moves to the top level"""
    name: Optional[str] = Field(None, max_length=255)
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, v: Optional[str]) -> Optional[str]:
        return check_folder_name(v)


class Folder(CamelModel):
    id: int
    name: str
    user_id: int
    parent_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
