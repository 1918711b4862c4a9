from typing import List, Optional
from datetime import datetime

from pairchat.schemas.common import CamelModel
from pairchat.schemas.message import MessageDto
from pairchat.schemas.user import UserResponse


class ConversationSummaryDto(CamelModel):
    user: UserResponse
    last_message: Optional[MessageDto] = None
    unread_count: int = 0


class OpenConversationRequest(CamelModel):
    participant_id: str


class ConversationDto(CamelModel):
    id: str
    participant_ids: List[str]
    created_at: datetime
    updated_at: datetime
