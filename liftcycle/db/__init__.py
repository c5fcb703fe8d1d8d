"""Database package for the item store."""
from liftcycle.db.database import (
    Base,
    async_session_maker,
    close_all_engines,
    create_engine,
    create_session_maker,
    engine,
    init_db,
)

__all__ = [
    "Base",
    "async_session_maker",
    "close_all_engines",
    "create_engine",
    "create_session_maker",
    "engine",
    "init_db",
]
