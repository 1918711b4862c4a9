from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import relationship
from datetime import datetime
from pairchat.database import Base
from pairchat.models.user import new_id

# MySQL DATETIME drops fractions of a second unless asked; history is ordered by this column
PreciseDateTime = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


class Message(Base):
    """Message in a two-party conversation. ``ciphertext`` holds the stored form."""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(PreciseDateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    ciphertext = Column(Text, nullable=False)
    read_at = Column(DateTime, nullable=True, default=None)

    conversation_id = Column(String(80), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # Weak reference, derived from the conversation pair
    receiver_id = Column(String(36), nullable=False, index=True)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User", back_populates="messages_sent")

    # Plaintext, filled in by the message store after decryption. Never persisted.
    content = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
