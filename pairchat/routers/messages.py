from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from pairchat.database import get_db
from pairchat.dependencies import get_current_user
from pairchat.errors import AuthorizationError
from pairchat.models.user import User
from pairchat.schemas.message import DeleteMessagesRequest, DeleteMessagesResponse, MessageDto, SendMessageRequest
from pairchat.services import messages as message_store
from pairchat.services.realtime import publish_new_message
from pairchat.ws import manager

router = APIRouter()


@router.get("/{conversation_id}", response_model=List[MessageDto])
async def get_messages(conversation_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Conversation history, oldest first. Marks the caller's unread messages as read."""
    # ensure user is participant
    if user.id not in message_store.split_conversation_id(conversation_id):
        raise AuthorizationError("Not a participant in this conversation")

    await message_store.mark_read(db, conversation_id, user.id)
    return await message_store.get_messages(db, conversation_id)


@router.post("", response_model=MessageDto, status_code=status.HTTP_201_CREATED)
async def send_message(body: SendMessageRequest, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    msg = await message_store.create_message(db, body.conversation_id, user.id, body.content)
    # Notify sockets joined to the conversation
    await publish_new_message(manager, msg)
    return msg


@router.delete("", response_model=DeleteMessagesResponse)
async def delete_messages(body: DeleteMessagesRequest, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    deleted = await message_store.delete_messages(db, body.message_ids, user.id)
    return DeleteMessagesResponse(deleted_count=deleted)


@router.delete("/{message_id}", response_model=DeleteMessagesResponse)
async def delete_message(message_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    deleted = await message_store.delete_messages(db, [message_id], user.id)
    return DeleteMessagesResponse(deleted_count=deleted)
