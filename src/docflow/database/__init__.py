"""Database layer backing the device-local store.

Public API:
    get_engine: Create an AsyncEngine from LocalStoreConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    init_schema: Create the local storage table if missing.
    Base: SQLAlchemy declarative base for all models.
"""

from docflow.database.connection import get_engine, get_session_factory, init_schema
from docflow.database.models import Base, LocalStorageEntry

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_schema",
    "Base",
    "LocalStorageEntry",
]
