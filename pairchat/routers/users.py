from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from pairchat.database import get_db
from pairchat.dependencies import get_current_user
from pairchat.models.user import User
from pairchat.schemas.user import ProfileUpdate, UserResponse
from pairchat.services import identity
from pairchat.services.realtime import publish_status
from pairchat.ws import manager

router = APIRouter()


@router.get("", response_model=List[UserResponse])
async def list_users(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Everyone except the caller"""
    return await identity.list_users(db, exclude_id=user.id)


@router.get("/search", response_model=List[UserResponse])
async def search_users(
    query: str = Query("", max_length=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await identity.search_users(db, query, exclude_id=user.id)


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    previous_status = user.status
    user = await identity.update_profile(db, user, body)
    if user.status != previous_status:
        await publish_status(manager, user.id, user.status)
    return user
