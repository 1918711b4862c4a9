"""Message store.

Messages are persisted as ciphertext and handed back to callers with the
plaintext in ``Message.content``. Conversation ids are the two participant ids,
sorted and joined with ``_``; every function here accepts either ordering of
the pair and works on the canonical form.
"""
import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pairchat.errors import ValidationError
from pairchat.models.conversation import Conversation
from pairchat.models.message import Message
from pairchat.services.store import store_operation
from pairchat.utils.crypto import decrypt, encrypt

logger = logging.getLogger(__name__)

CONVERSATION_SEPARATOR = "_"


def derive_conversation_id(user_a: str, user_b: str) -> str:
    a_id, b_id = sorted((user_a, user_b))
    return f"{a_id}{CONVERSATION_SEPARATOR}{b_id}"


def split_conversation_id(conversation_id: str) -> Tuple[str, str]:
    """Return the participant pair of a conversation id, sorted.

    Raises ValidationError unless the id names exactly two distinct users.
    """
    if not isinstance(conversation_id, str):
        raise ValidationError(f"Malformed conversation id: {conversation_id!r}")
    parts = conversation_id.split(CONVERSATION_SEPARATOR)
    if len(parts) != 2 or not all(parts) or parts[0] == parts[1]:
        raise ValidationError(f"Malformed conversation id: {conversation_id!r}")
    a_id, b_id = sorted(parts)
    return a_id, b_id


def derive_receiver(conversation_id: str, sender_id: str) -> str:
    a_id, b_id = split_conversation_id(conversation_id)
    if sender_id == a_id:
        return b_id
    if sender_id == b_id:
        return a_id
    raise ValidationError("Sender is not a participant in this conversation")


def _canonical_or_none(conversation_id: str) -> Optional[str]:
    try:
        return derive_conversation_id(*split_conversation_id(conversation_id))
    except ValidationError:
        return None


def _with_plaintext(message: Optional[Message]) -> Optional[Message]:
    if message is not None:
        message.content = decrypt(message.ciphertext)
    return message


def _is_well_formed_id(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


async def get_or_create_conversation(db: AsyncSession, user_a: str, user_b: str) -> Conversation:
    conversation_id = derive_conversation_id(user_a, user_b)
    a_id, b_id = split_conversation_id(conversation_id)

    result = await db.execute(select(Conversation).where(Conversation.id == conversation_id))
    conversation = result.scalar_one_or_none()
    if conversation:
        return conversation

    conversation = Conversation(id=conversation_id, user_a_id=a_id, user_b_id=b_id)
    db.add(conversation)
    try:
        await db.flush()
    except IntegrityError:
        # created concurrently by the other participant
        await db.rollback()
        result = await db.execute(select(Conversation).where(Conversation.id == conversation_id))
        conversation = result.scalar_one()
    return conversation


async def create_message(db: AsyncSession, conversation_id: str, sender_id: str, content: str) -> Message:
    if content is None or not content.strip():
        raise ValidationError("Message content is required")

    receiver_id = derive_receiver(conversation_id, sender_id)

    async with store_operation(db, "send message"):
        conversation = await get_or_create_conversation(db, sender_id, receiver_id)
        msg = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            ciphertext=encrypt(content),
        )
        db.add(msg)
        # update conversation updated_at
        conversation.updated_at = datetime.utcnow()
        await db.commit()

        stmt = (
            select(Message)
            .options(selectinload(Message.sender))
            .where(Message.id == msg.id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        msg = result.scalar_one()

    logger.debug(f"Stored message {msg.id} in {msg.conversation_id}")
    return _with_plaintext(msg)


async def get_messages(db: AsyncSession, conversation_id: str) -> List[Message]:
    conversation_id = _canonical_or_none(conversation_id)
    if conversation_id is None:
        return []

    stmt = (
        select(Message)
        .options(selectinload(Message.sender))
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc())
        .execution_options(populate_existing=True)
    )
    async with store_operation(db, "load messages"):
        result = await db.execute(stmt)
        messages = result.scalars().all()
    return [_with_plaintext(m) for m in messages]


async def mark_read(db: AsyncSession, conversation_id: str, reader_id: str) -> int:
    """Mark every unread message the reader received in the conversation. Idempotent."""
    conversation_id = _canonical_or_none(conversation_id)
    if conversation_id is None:
        return 0

    now = datetime.utcnow()
    stmt = (
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != reader_id,
            Message.read_at.is_(None),
        )
        .values(read_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    async with store_operation(db, "mark messages read"):
        result = await db.execute(stmt)
        await db.commit()
    return result.rowcount or 0


async def delete_messages(db: AsyncSession, ids: Iterable[str], requesting_user_id: str) -> int:
    """Delete the given messages the requester sent or received. Returns the deleted count."""
    valid_ids = {i for i in (ids or []) if _is_well_formed_id(i)}
    if not valid_ids:
        return 0

    stmt = (
        delete(Message)
        .where(
            Message.id.in_(valid_ids),
            or_(Message.sender_id == requesting_user_id, Message.receiver_id == requesting_user_id),
        )
        .execution_options(synchronize_session=False)
    )
    async with store_operation(db, "delete messages"):
        result = await db.execute(stmt)
        await db.commit()

    deleted = result.rowcount or 0
    logger.info(f"User {requesting_user_id} deleted {deleted}/{len(valid_ids)} messages")
    return deleted


async def get_last_message(db: AsyncSession, user_a: str, user_b: str) -> Optional[Message]:
    stmt = (
        select(Message)
        .options(selectinload(Message.sender))
        .where(Message.conversation_id == derive_conversation_id(user_a, user_b))
        .order_by(Message.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    async with store_operation(db, "load last message"):
        result = await db.execute(stmt)
        msg = result.scalar_one_or_none()
    return _with_plaintext(msg)


async def get_unread_count(db: AsyncSession, owner_id: str, counterpart_id: str) -> int:
    """Number of messages from ``counterpart_id`` that ``owner_id`` has not read."""
    stmt = select(func.count(Message.id)).where(
        Message.receiver_id == owner_id,
        Message.sender_id == counterpart_id,
        Message.read_at.is_(None),
    )
    async with store_operation(db, "count unread messages"):
        result = await db.execute(stmt)
        return result.scalar_one()
