"""Conversation aggregation: who a user has talked to, last message and unread count."""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pairchat.errors import NotFoundError, ValidationError
from pairchat.models.conversation import Conversation
from pairchat.models.message import Message
from pairchat.models.user import User
from pairchat.services import messages as message_store
from pairchat.services.identity import get_user
from pairchat.services.store import store_operation

logger = logging.getLogger(__name__)


@dataclass
class ConversationSummary:
    user: User
    last_message: Optional[Message]
    unread_count: int


async def list_counterparty_ids(db: AsyncSession, user_id: str) -> set[str]:
    stmt = (
        select(Message.sender_id, Message.receiver_id)
        .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
        .distinct()
    )
    async with store_operation(db, "list conversations"):
        result = await db.execute(stmt)
        rows = result.all()
    return {receiver if sender == user_id else sender for sender, receiver in rows}


async def list_conversations(db: AsyncSession, user_id: str) -> List[ConversationSummary]:
    counterparty_ids = await list_counterparty_ids(db, user_id)
    if not counterparty_ids:
        return []

    async with store_operation(db, "list conversations"):
        result = await db.execute(select(User).where(User.id.in_(counterparty_ids)))
        users = {u.id: u for u in result.scalars().all()}

    summaries = []
    for counterparty_id in counterparty_ids:
        user = users.get(counterparty_id)
        if user is None:
            logger.debug(f"Dropping conversation with missing user {counterparty_id}")
            continue
        summaries.append(
            ConversationSummary(
                user=user,
                last_message=await message_store.get_last_message(db, user_id, counterparty_id),
                unread_count=await message_store.get_unread_count(db, user_id, counterparty_id),
            )
        )

    # Most recent first, then counterparty id. Python's sort is stable under reverse=True.
    summaries.sort(key=lambda s: s.user.id)
    with_message = [s for s in summaries if s.last_message is not None]
    without_message = [s for s in summaries if s.last_message is None]
    with_message.sort(key=lambda s: s.last_message.created_at, reverse=True)
    return with_message + without_message


async def open_conversation(db: AsyncSession, user_id: str, participant_id: str) -> Conversation:
    """Return the conversation between two users, creating it if needed."""
    if not participant_id or participant_id == user_id:
        raise ValidationError("Cannot open a conversation with yourself")
    if not await get_user(db, participant_id):
        raise NotFoundError("Participant not found")

    async with store_operation(db, "open conversation"):
        conversation = await message_store.get_or_create_conversation(db, user_id, participant_id)
        await db.commit()
    return conversation
