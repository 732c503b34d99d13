"""
Database Session Management Module

One async engine per process. Request handlers get a session through
`get_db`; the usage recorder and the cleanup job open their own sessions from
`AsyncSessionLocal`, so on SQLite writers from several sessions overlap.
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ollama_gateway.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine

    SQLite connections are switched to WAL with a busy timeout so a usage log
    insert does not fail while a request session holds the write lock.
    """
    is_sqlite = database_url.startswith("sqlite")
    async_engine = create_async_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )

    if is_sqlite and ":memory:" not in database_url:

        @event.listens_for(async_engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return async_engine


settings = get_settings()

# echo=True prints SQL statements in DEBUG mode
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the api_keys, model_configs and usage_logs tables if missing"""
    from ollama_gateway.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
