from pairchat.models.user import User, UserStatus
from pairchat.models.conversation import Conversation
from pairchat.models.message import Message

__all__ = [
	"User",
	"UserStatus",
	"Conversation",
	"Message",
]
