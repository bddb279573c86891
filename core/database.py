"""
Database engine and session management (SQLAlchemy async)

The API, the scheduler and the scripts each build their own engine from a
URL; tracker tables, run rows and records all live in the same database.
"""

from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_engine(url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """Async engine for ``url`` (defaults to ``settings.DATABASE_URL``)"""
    kwargs.setdefault("echo", False)
    kwargs.setdefault("poolclass", NullPool)
    return create_async_engine(url or settings.DATABASE_URL, **kwargs)


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


def sync_url(url: Optional[str] = None) -> str:
    """Driver-less URL for synchronous tools such as alembic"""
    url = url or settings.DATABASE_URL
    return url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


async def create_tables(bind: AsyncEngine) -> None:
    """Create every table registered on ``Base.metadata``"""
    from models import key_value, xml_record, xml_run  # noqa: F401 - registers the tables
    from models.base import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")


engine = create_engine()
async_session_maker = create_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session"""
    async with async_session_maker() as session:
        yield session
