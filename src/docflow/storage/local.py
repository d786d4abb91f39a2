"""Device-local project store.

The whole project collection is serialized as one JSON array under a single
namespaced key. Every write is a read-modify-write over that collection:
read it, change one record, write the complete collection back.

Writes within one call are internally consistent, but there is no locking
across contexts. When two contexts write concurrently the last physical
write wins and the other change is lost. Live views compensate by
re-reading on every change signal instead of caching writes.
"""

from __future__ import annotations

import json

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docflow.database.queries.local_storage import (
    EntryStamp,
    get_entry_stamp,
    get_value,
    set_value,
)
from docflow.errors import StorageError
from docflow.models import Project, project_list_adapter

logger = structlog.get_logger(__name__)

DEFAULT_STORAGE_KEY = "docflow-projects"


class LocalProjectStore:
    """Project store backed by one key of the local key-value store.

    Attributes:
        name: Backend name used in logs
        storage_key: Key holding the serialized collection
        context_id: Id of the UI context writing through this store
    """

    name = "local"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        context_id: str,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        """Initialize the local store.

        Args:
            session_factory: Factory for sessions on the local database
            context_id: Id recorded as writer of every change made here
            storage_key: Namespaced key holding the collection
        """
        self._session_factory = session_factory
        self.context_id = context_id
        self.storage_key = storage_key
        self._own_versions: set[int] = set()

    async def _read_raw(self) -> str | None:
        async with self._session_factory() as session:
            return await get_value(session, self.storage_key)

    async def _read_collection(self, strict: bool = False) -> list[Project]:
        """Decode the stored collection.

        An unreadable collection reads as empty. With ``strict`` it raises
        instead, so a write never overwrites data it could not parse.
        """
        raw = await self._read_raw()
        if raw is None:
            return []
        try:
            return project_list_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(
                "local_collection_unreadable",
                key=self.storage_key,
                error=str(e),
            )
            if strict:
                raise StorageError(
                    f"Local collection under {self.storage_key!r} is unreadable"
                ) from e
            return []

    async def _write_collection(self, projects: list[Project]) -> None:
        payload = json.dumps([p.to_storage() for p in projects])
        async with self._session_factory() as session:
            version = await set_value(session, self.storage_key, payload, self.context_id)
        self._own_versions.add(version)

    async def get_all(self) -> list[Project]:
        """Return every stored project in storage order."""
        return await self._read_collection()

    async def get(self, project_id: str) -> Project | None:
        """Return the project with the given id, or None."""
        for project in await self._read_collection():
            if project.id == project_id:
                return project
        return None

    async def exists(self, project_id: str) -> bool:
        """Check whether a project id is stored."""
        return await self.get(project_id) is not None

    async def put(self, project: Project) -> Project:
        """Insert or replace a project, keeping its position if it exists."""
        projects = await self._read_collection(strict=True)
        for index, existing in enumerate(projects):
            if existing.id == project.id:
                projects[index] = project
                break
        else:
            projects.append(project)

        await self._write_collection(projects)
        logger.debug("local_project_written", project_id=project.id, total=len(projects))
        return project

    async def delete(self, project_id: str) -> bool:
        """Remove a project.

        Returns:
            True if a record was removed, False if the id was absent.
        """
        projects = await self._read_collection(strict=True)
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False

        await self._write_collection(remaining)
        logger.debug("local_project_removed", project_id=project_id, total=len(remaining))
        return True

    async def clear(self) -> None:
        """Replace the collection with an empty one."""
        await self._write_collection([])

    def foreign_versions(self, after: int, upto: int) -> list[int]:
        """Return versions in (after, upto] that this store did not write."""
        return [v for v in range(after + 1, upto + 1) if v not in self._own_versions]

    def forget_versions(self, upto: int) -> None:
        """Drop own-write bookkeeping for versions already observed."""
        self._own_versions = {v for v in self._own_versions if v > upto}

    async def stamp(self) -> EntryStamp | None:
        """Return the write stamp of the collection key."""
        async with self._session_factory() as session:
            return await get_entry_stamp(session, self.storage_key)
