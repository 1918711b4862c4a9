"""Identity store: user records, credentials and presence status."""
import logging
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pairchat.errors import AuthError, ConflictError, NotFoundError, ValidationError
from pairchat.models.user import User, UserStatus
from pairchat.schemas.user import ProfileUpdate
from pairchat.services.store import store_operation
from pairchat.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6
SEARCH_LIMIT = 50


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    async with store_operation(db, "load user"):
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    async with store_operation(db, "load user"):
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    username: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    username = (username or "").strip()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if await get_user_by_username(db, username):
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        status=UserStatus.OFFLINE.value,
    )
    async with store_operation(db, "create user"):
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # lost a race with a concurrent signup
            await db.rollback()
            raise ConflictError("Username already exists")
        await db.refresh(user)

    logger.info(f"Created user {user.id} ({user.username})")
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    user = await get_user_by_username(db, (username or "").strip())
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")
    return user


async def list_users(db: AsyncSession, exclude_id: Optional[str] = None) -> List[User]:
    stmt = select(User).order_by(User.username)
    if exclude_id:
        stmt = stmt.where(User.id != exclude_id)
    async with store_operation(db, "list users"):
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def search_users(
    db: AsyncSession,
    query: str,
    exclude_id: Optional[str] = None,
    limit: int = SEARCH_LIMIT,
) -> List[User]:
    """Case-insensitive substring match on username, first name and last name."""
    query = (query or "").strip().lower()
    stmt = select(User).order_by(User.username).limit(limit)
    if exclude_id:
        stmt = stmt.where(User.id != exclude_id)
    if query:
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        stmt = stmt.where(
            or_(
                func.lower(User.username).like(pattern, escape="\\"),
                func.lower(User.first_name).like(pattern, escape="\\"),
                func.lower(User.last_name).like(pattern, escape="\\"),
            )
        )
    async with store_operation(db, "search users"):
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def update_profile(db: AsyncSession, user: User, updates: ProfileUpdate) -> User:
    changes = updates.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field == "status":
            if value is None:
                continue
            value = UserStatus(value).value
        setattr(user, field, value)

    async with store_operation(db, "update profile"):
        await db.commit()
        await db.refresh(user)
    return user


async def set_status(db: AsyncSession, user_id: str, status: UserStatus) -> Optional[User]:
    user = await get_user(db, user_id)
    if not user:
        return None
    if user.status == status.value:
        return user
    user.status = status.value
    async with store_operation(db, "update status"):
        await db.commit()
        await db.refresh(user)
    logger.info(f"User {user_id} is now {status.value}")
    return user
