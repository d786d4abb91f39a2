"""Engines and session factories for the local store, built from LocalStoreConfig.

The local store is a SQLite file reached through the aiosqlite driver. Every
UI context on the device opens its own engine against the same file.

Example usage:
    >>> from docflow.config import LocalStoreConfig
    >>> from docflow.database.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(LocalStoreConfig())
    >>> await init_schema(engine)
    >>> sessions = get_session_factory(engine)
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docflow.config import LocalStoreConfig
from docflow.database.models import Base


def get_engine(config: LocalStoreConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from local store configuration.

    Args:
        config: Local store configuration containing URL and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    return create_async_engine(
        config.url,
        echo=config.echo,
    )


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory for the local store.

    Sessions keep attribute values after commit (``expire_on_commit=False``),
    since every store call reads its result outside the transaction.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """Create the local storage table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
