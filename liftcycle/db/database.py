"""Database engine and session management for the item store."""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from liftcycle.config.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


def create_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine; in-memory SQLite shares one connection."""
    url = database_url or settings.database_url
    kwargs = {"echo": settings.debug if echo is None else echo, "future": True}

    if _is_memory_sqlite(url):
        kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    elif not url.startswith("sqlite"):
        kwargs.update(
            pool_size=10,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=300,
            pool_pre_ping=True,
        )

    return create_async_engine(url, **kwargs)


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_engine()
async_session_maker = create_session_maker(engine)


async def init_db(bind: AsyncEngine | None = None):
    """Create the items table (and enable WAL for file-backed SQLite)."""
    bind = bind or engine
    url = str(bind.url)

    if url.startswith("sqlite") and not _is_memory_sqlite(url):
        async with bind.connect() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
            await conn.execute(text("PRAGMA busy_timeout=30000"))
            await conn.commit()

    # Register the table on Base.metadata before create_all
    from liftcycle.models import item  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Item store initialized")


async def close_all_engines():
    await engine.dispose()
