from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from pairchat.config import get_settings

settings = get_settings()


def normalize_database_url(url: str) -> str:
    """Map plain driver URLs (Railway, Heroku style) to their async drivers."""
    if url.startswith("mysql://"):
        return "mysql+aiomysql://" + url[8:]
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + url[10:]
    url = url.replace("mysql+mysqldb://", "mysql+aiomysql://")
    url = url.replace("mysql+pymysql://", "mysql+aiomysql://")
    return url


database_url = normalize_database_url(settings.database_url)

if database_url.startswith("sqlite"):
    # aiosqlite connections are bound to the loop that opened them
    engine = create_async_engine(
        database_url,
        echo=settings.database_echo,
        poolclass=NullPool,
    )
else:
    engine = create_async_engine(
        database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,  # Reconnect on stale connections
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
    )

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_models() -> None:
    """Create missing tables. Deployments run the alembic migrations instead."""
    import pairchat.models  # noqa: F401  registers the mappers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models() -> None:
    import pairchat.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
