from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from pairchat.database import get_db
from pairchat.dependencies import get_current_user
from pairchat.models.user import User
from pairchat.schemas.conversation import ConversationDto, ConversationSummaryDto, OpenConversationRequest
from pairchat.services import conversations

router = APIRouter()


@router.get("", response_model=List[ConversationSummaryDto])
async def list_conversations(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Counterparties with their last message and unread count, most recent first"""
    summaries = await conversations.list_conversations(db, user.id)
    return [ConversationSummaryDto.model_validate(s) for s in summaries]


@router.post("", response_model=ConversationDto)
async def open_conversation(
    body: OpenConversationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await conversations.open_conversation(db, user.id, body.participant_id)
