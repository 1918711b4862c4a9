from typing import List, Optional
from datetime import datetime

from pairchat.schemas.common import CamelModel


class SenderDto(CamelModel):
    id: str
    username: str
    avatar_url: Optional[str] = None


class MessageDto(CamelModel):
    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    sender: Optional[SenderDto] = None


class SendMessageRequest(CamelModel):
    conversation_id: str
    content: str


class DeleteMessagesRequest(CamelModel):
    message_ids: List[str]


class DeleteMessagesResponse(CamelModel):
    deleted_count: int
