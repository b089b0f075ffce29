"""Declarative base plus the async engine and session plumbing shared by the API, workers and tests."""
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from pulse.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_engine(database_url: Optional[str] = None, *, per_task: bool = False) -> AsyncEngine:
    """Create an async engine for the configured database.

    `per_task` engines hold no pooled connections: Celery tasks and tests each
    run their own event loop, and a pooled connection cannot cross loops.
    """
    settings = get_settings()
    options = {"echo": settings.debug}
    if per_task:
        options["poolclass"] = NullPool
    else:
        options["pool_pre_ping"] = True
    return create_async_engine(database_url or settings.database_url, **options)


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    # Rows loaded before a commit stay readable; the pipeline commits after every step.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
async_session_maker = build_session_maker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (%s)", target.dialect.name)
