"""
Async engine and session plumbing.

Requests get a session through `get_db`; work that outlives a request (the
assistant reply) opens its own sessions from `get_session_factory()`.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as AsyncSessionSQLModel

from eduhive.core.config import settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    options = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if settings.async_database_url.startswith("postgresql"):
        options.update(
            pool_size=10,
            max_overflow=20,
            pool_recycle=3600,
            connect_args={"server_settings": {"application_name": "eduhive_api"}},
        )
    return options


async_engine = create_async_engine(settings.async_database_url, **_engine_options())

AsyncSessionLocal = sessionmaker(
    bind=async_engine,
    class_=AsyncSessionSQLModel,
    expire_on_commit=False,
    autoflush=False
)


async def init_db():
    """Create missing tables; migrations remain the source of truth in production"""
    import eduhive.models  # noqa: F401

    logger.info(f"Initializing database ({settings.ENVIRONMENT})")
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_session_factory():
    return AsyncSessionLocal
