from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from pairchat.database import Base


class Conversation(Base):
    """Two-party conversation. The id is the sorted participant pair joined by '_'."""
    __tablename__ = "conversations"

    id = Column(String(80), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Participants (unordered pair stored as user_a_id < user_b_id by convention)
    user_a_id = Column(String(36), nullable=False, index=True)
    user_b_id = Column(String(36), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="unique_conversation_pair"),
    )

    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    @property
    def participant_ids(self) -> list[str]:
        return [self.user_a_id, self.user_b_id]
