"""SQLAlchemy ORM models for the local store."""

from docflow.database.models.base import Base
from docflow.database.models.local_storage import LocalStorageEntry

__all__ = [
    "Base",
    "LocalStorageEntry",
]
