from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from pairchat.config import get_settings
from pairchat.database import get_db
from pairchat.errors import AuthError
from pairchat.models.user import User
from pairchat.services.identity import get_user
from pairchat.utils.security import create_access_token, decode_access_token

settings = get_settings()
security = HTTPBearer(auto_error=False)


def token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current user from the session cookie or a Bearer token"""
    token = token_from_request(request, credentials)
    if not token:
        raise AuthError("Not authenticated")

    user = await get_user(db, decode_access_token(token))
    if user is None:
        raise AuthError("User not found")
    return user


def set_session_cookie(response: Response, user: User) -> str:
    access_token = create_access_token(data={"sub": user.id})
    response.set_cookie(
        key=settings.session_cookie_name,
        value=access_token,
        httponly=True,
        secure=settings.cookie_secure,
        max_age=settings.access_token_expire_minutes * 60,
        samesite="lax"
    )
    return access_token


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.session_cookie_name)
