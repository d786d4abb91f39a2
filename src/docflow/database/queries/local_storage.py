"""Key-value query functions for the local store.

Each function runs in its own short transaction. No lock is held between a
read and the write that follows it, so concurrent writers on the same key
resolve as last-write-wins.
"""

from __future__ import annotations

from typing import NamedTuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.database.models.local_storage import LocalStorageEntry

logger = structlog.get_logger(__name__)


class EntryStamp(NamedTuple):
    """Write stamp of a key: how many writes, and who wrote last."""

    version: int
    writer_id: str


async def get_value(session: AsyncSession, key: str) -> str | None:
    """Read the value stored under key.

    Args:
        session: Active async database session.
        key: Storage key.

    Returns:
        The stored string, or None if the key is absent.
    """
    stmt = select(LocalStorageEntry.value).where(LocalStorageEntry.key == key)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def set_value(
    session: AsyncSession,
    key: str,
    value: str,
    writer_id: str,
) -> int:
    """Write value under key, bumping its version.

    Args:
        session: Active async database session.
        key: Storage key.
        value: Serialized value to store.
        writer_id: Context id of the writer.

    Returns:
        The version this write produced.
    """
    stmt = insert(LocalStorageEntry).values(
        key=key, value=value, version=1, writer_id=writer_id
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[LocalStorageEntry.key],
        set_={
            "value": stmt.excluded.value,
            "writer_id": stmt.excluded.writer_id,
            "version": LocalStorageEntry.version + 1,
            "updated_at": func.now(),
        },
    ).returning(LocalStorageEntry.version)
    async with session.begin():
        result = await session.execute(stmt)
        version = result.scalar_one()

    logger.debug(
        "local_value_written",
        key=key,
        writer_id=writer_id,
        version=version,
        size=len(value),
    )
    return version


async def get_entry_stamp(session: AsyncSession, key: str) -> EntryStamp | None:
    """Read the write stamp of key without loading its value.

    Returns:
        EntryStamp, or None if the key is absent.
    """
    stmt = select(LocalStorageEntry.version, LocalStorageEntry.writer_id).where(
        LocalStorageEntry.key == key
    )
    result = await session.execute(stmt)
    row = result.one_or_none()
    if row is None:
        return None
    return EntryStamp(version=row.version, writer_id=row.writer_id)
