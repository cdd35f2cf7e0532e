from enum import Enum
from datetime import datetime
from pydantic import EmailStr

from cloudbox.schemas.base import CamelModel


class SharePermission(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    FULL = "full"


class ShareStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ShareCreate(CamelModel):
    file_id: int
    shared_with_email: EmailStr
    permission: SharePermission = SharePermission.VIEW


class Share(CamelModel):
    id: int
    file_id: int
    shared_by_user_id: int
    shared_with_email: str
    permission: SharePermission
    status: ShareStatus
    created_at: datetime
