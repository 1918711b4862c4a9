from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from pairchat.database import get_db
from pairchat.dependencies import clear_session_cookie, get_current_user, set_session_cookie
from pairchat.models.user import User
from pairchat.schemas.auth import LoginRequest, SignupRequest
from pairchat.schemas.user import UserResponse
from pairchat.services import identity

router = APIRouter()


@router.post("/signup", response_model=UserResponse)
async def signup(body: SignupRequest, response: Response, db: AsyncSession = Depends(get_db)):
    """Create an account and start a session"""
    user = await identity.create_user(
        db,
        username=body.username,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    set_session_cookie(response, user)
    return user


@router.post("/login", response_model=UserResponse)
async def login(body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user = await identity.authenticate(db, body.username, body.password)
    set_session_cookie(response, user)
    return user


@router.post("/logout")
async def logout(response: Response):
    clear_session_cookie(response)
    return {"success": True, "message": "Logged out"}


@router.get("/auth/user", response_model=UserResponse)
async def get_current_user_info(user: User = Depends(get_current_user)):
    return user
