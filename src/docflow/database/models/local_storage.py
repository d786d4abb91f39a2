"""Key-value entry model for the device-local store.

The local store behaves like a browser's key-value storage: each key holds one
serialized string. Projects live under a single namespaced key holding the
whole collection. Each write bumps ``version`` and records which context
wrote it, which is what the cross-context change watcher observes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from docflow.database.models.base import Base


class LocalStorageEntry(Base):
    """One key in the local key-value store.

    Attributes:
        key: Namespaced storage key.
        value: Serialized value.
        version: Write counter, incremented on every write.
        writer_id: Context id of the last writer.
        updated_at: Time of the last write.
    """

    __tablename__ = "local_storage"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    writer_id: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
