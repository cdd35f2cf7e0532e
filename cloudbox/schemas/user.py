from typing import Optional
from datetime import datetime

from cloudbox.schemas.base import CamelModel


class UserRegister(CamelModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class UserUpdate(CamelModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class User(CamelModel):
    id: int
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
