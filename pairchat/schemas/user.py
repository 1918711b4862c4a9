from pydantic import Field
from typing import Optional
from datetime import datetime

from pairchat.models.user import UserStatus
from pairchat.schemas.common import CamelModel


class UserResponse(CamelModel):
    id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    status: str = UserStatus.OFFLINE.value
    created_at: Optional[datetime] = None


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=512)
    bio: Optional[str] = None
    status: Optional[UserStatus] = None


class UserStatusEvent(CamelModel):
    user_id: str
    status: str
