from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./pairchat.db"
    database_echo: bool = False
    database_auto_create: bool = True  # create_all on startup; use alembic in production
    # Pool options, SQLAlchemy defaults. Ignored for SQLite (NullPool).
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: float = 30
    database_pool_recycle: int = -1

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    session_cookie_name: str = "chat_session"
    cookie_secure: bool = False  # Set to True in production

    # Message cipher: "shift" (letter shift) or "fernet" (needs encryption_key)
    message_cipher: str = "shift"
    encryption_key: Optional[str] = None

    # Redis
    redis_url: str = ""  # Optional Redis URL for pub/sub (local: redis://localhost:6379)
    redis_channel: str = "chat:events"

    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
    ]

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
