from pairchat.schemas.auth import SignupRequest, LoginRequest
from pairchat.schemas.user import UserResponse, ProfileUpdate, UserStatusEvent
from pairchat.schemas.message import (
    SenderDto, MessageDto, SendMessageRequest, DeleteMessagesRequest, DeleteMessagesResponse,
)
from pairchat.schemas.conversation import ConversationSummaryDto, OpenConversationRequest, ConversationDto

__all__ = [
    "SignupRequest", "LoginRequest",
    "UserResponse", "ProfileUpdate", "UserStatusEvent",
    "SenderDto", "MessageDto", "SendMessageRequest", "DeleteMessagesRequest", "DeleteMessagesResponse",
    "ConversationSummaryDto", "OpenConversationRequest", "ConversationDto",
]
