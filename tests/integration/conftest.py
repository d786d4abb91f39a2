"""Pytest fixtures for integration tests.

Provides async database fixtures backed by a SQLite file in the test's
temporary directory. A file (rather than ``:memory:``) lets several engines,
one per simulated UI context, share the same local store the way browser
tabs share one origin's storage.
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from docflow.config import LocalStoreConfig, RemoteStoreConfig
from docflow.database.connection import get_engine, get_session_factory, init_schema
from docflow.storage.local import LocalProjectStore

REMOTE_URL = "https://docflow.test"


@pytest.fixture
def local_db_url(tmp_path: Path) -> str:
    """URL of the shared local database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'local.db'}"


@pytest_asyncio.fixture
async def engine(local_db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create a SQLite async engine with the schema in place.

    Yields:
        Configured AsyncEngine instance.
    """
    test_engine = get_engine(LocalStoreConfig(url=local_db_url))
    await init_schema(test_engine)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def second_engine(local_db_url: str, engine: AsyncEngine) -> AsyncGenerator[AsyncEngine, None]:
    """A second engine on the same file, standing in for another tab."""
    other = get_engine(LocalStoreConfig(url=local_db_url))

    yield other

    await other.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the primary engine."""
    return get_session_factory(engine)


@pytest.fixture
def local_store(session_factory: async_sessionmaker[AsyncSession]) -> LocalProjectStore:
    """Local store of the context ``tab-1``."""
    return LocalProjectStore(session_factory, context_id="tab-1")


@pytest.fixture
def other_local_store(second_engine: AsyncEngine) -> LocalProjectStore:
    """Local store of the context ``tab-2`` on the same database file."""
    return LocalProjectStore(get_session_factory(second_engine), context_id="tab-2")


@pytest.fixture
def remote_config() -> RemoteStoreConfig:
    """Remote store configuration pointing at a mocked endpoint."""
    return RemoteStoreConfig(url=REMOTE_URL, anon_key="anon-key", timeout_seconds=5)
