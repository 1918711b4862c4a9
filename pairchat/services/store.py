import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pairchat.errors import StoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_operation(db: AsyncSession, action: str):
    """Roll back and re-raise database failures as StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Store failure while trying to {action}")
        raise StoreError(f"Failed to {action}", debug=str(e)) from e
