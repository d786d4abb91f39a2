"""Project repository facade.

The single entry point for every consumer. Each call is routed to one
backend based on the session at call time: the local store while signed
out, the remote store once a session exists. A call never mixes the two,
and a remote failure is never answered from the local store.

Example usage:
    >>> repo = ProjectRepository(local, SessionState(), remote_factory, bus)
    >>> project = await repo.create("Checkout flow", ProjectType.PRD)
    >>> await repo.delete(project.id)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

import structlog

from docflow.errors import ProjectNotFoundError, ProjectValidationError
from docflow.models import (
    Document,
    Project,
    ProjectType,
    ensure_utc,
    new_project_id,
    utc_now,
)
from docflow.session import AuthSession, SessionProvider
from docflow.storage.base import ProjectStore
from docflow.storage.local import LocalProjectStore
from docflow.storage.remote import RemoteProjectStore
from docflow.sync.bus import ChangeNotificationBus
from docflow.sync.migration import MigrationCoordinator, MigrationReport

logger = structlog.get_logger(__name__)

RemoteFactory = Callable[[AuthSession], RemoteProjectStore]

_MIN_ADVANCE = timedelta(microseconds=1)


def validate_project(project: Project) -> None:
    """Reject projects that must never be persisted.

    Raises:
        ProjectValidationError: If the title is empty or blank
    """
    if not project.title or not project.title.strip():
        raise ProjectValidationError("Project title must not be empty")
    if not project.id:
        raise ProjectValidationError("Project id must not be empty")


def next_updated_at(
    incoming: datetime, stored: datetime | None, now: datetime | None = None
) -> datetime:
    """Pick an updatedAt that never moves backwards for an id.

    The result is at least the current time and the incoming value, and
    strictly later than the stored value. Naive inputs count as UTC.
    """
    stamp = max(now or utc_now(), ensure_utc(incoming))
    if stored is not None and stamp <= ensure_utc(stored):
        stamp = ensure_utc(stored) + _MIN_ADVANCE
    return stamp


class ProjectRepository:
    """Uniform CRUD over the local and remote project stores."""

    def __init__(
        self,
        local: LocalProjectStore,
        session_provider: SessionProvider,
        remote_factory: RemoteFactory | None = None,
        bus: ChangeNotificationBus | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            local: Store used while no session exists
            session_provider: Returns the current session, or None
            remote_factory: Builds the remote store for a session
            bus: Bus receiving a change event after each mutation
        """
        self.local = local
        self._session_provider = session_provider
        self._remote_factory = remote_factory
        self.bus = bus
        self._remote: RemoteProjectStore | None = None

    @property
    def context_id(self) -> str:
        return self.local.context_id

    async def _remote_for(self, session: AuthSession) -> RemoteProjectStore:
        if self._remote_factory is None:
            raise RuntimeError("Session is authenticated but no remote store is configured")
        if self._remote is not None and self._remote.session != session:
            # Session changed; release the previous user's client
            await self._remote.close()
            self._remote = None
        if self._remote is None:
            self._remote = self._remote_factory(session)
        return self._remote

    async def active_store(self) -> ProjectStore:
        """Return the store that the current call should use."""
        session = self._session_provider()
        if session is None:
            return self.local
        return await self._remote_for(session)

    async def _notify(self, project_id: str | None = None) -> None:
        if self.bus is not None:
            await self.bus.publish_app_change(source=self.context_id, project_id=project_id)

    async def get_all(self) -> list[Project]:
        """Return every project of the active backend, in no particular order."""
        store = await self.active_store()
        return await store.get_all()

    async def get(self, project_id: str) -> Project:
        """Return one project.

        Raises:
            ProjectNotFoundError: If the id is absent
        """
        store = await self.active_store()
        project = await store.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def save(self, project: Project) -> Project:
        """Insert or replace a project as a whole, advancing updatedAt.

        Raises:
            ProjectValidationError: If the title is empty
        """
        return await self._save(project, utc_now())

    async def _save(self, project: Project, now: datetime) -> Project:
        validate_project(project)
        store = await self.active_store()
        stored = await store.get(project.id)

        changes: dict[str, Any] = {
            "updated_at": next_updated_at(
                project.updated_at, stored.updated_at if stored else None, now=now
            )
        }
        if stored is not None:
            changes["created_at"] = stored.created_at
        saved = await store.put(project.model_copy(update=changes))

        logger.info(
            "project_saved",
            project_id=saved.id,
            backend=store.name,
            created=stored is None,
        )
        await self._notify(saved.id)
        return saved

    async def create(
        self,
        title: str,
        project_type: ProjectType,
        description: str = "",
        content: str = "",
        documents: list[Document] | None = None,
        site_flow: dict[str, Any] | None = None,
    ) -> Project:
        """Create a project with a fresh id and initial timestamps."""
        now = utc_now()
        project = Project(
            id=new_project_id(),
            title=title,
            type=project_type,
            description=description,
            content=content,
            documents=list(documents or []),
            site_flow=site_flow,
            created_at=now,
            updated_at=now,
        )
        return await self._save(project, now)

    async def add_document(self, project_id: str, document: Document) -> Project:
        """Append a generated document and save the whole project."""
        project = await self.get(project_id)
        updated = project.model_copy(update={"documents": [*project.documents, document]})
        return await self.save(updated)

    async def delete(self, project_id: str) -> None:
        """Delete a project. Deleting an absent id succeeds silently."""
        store = await self.active_store()
        removed = await store.delete(project_id)
        logger.info(
            "project_deleted",
            project_id=project_id,
            backend=store.name,
            existed=removed,
        )
        await self._notify(project_id)

    async def clear(self) -> None:
        """Remove every project from the active backend."""
        store = await self.active_store()
        await store.clear()
        logger.info("projects_cleared", backend=store.name)
        await self._notify()

    async def migrate(self) -> MigrationReport:
        """Copy local projects into the remote store of the current session."""
        session = self._session_provider()
        if session is None:
            logger.warning("migration_skipped_unauthenticated")
            return MigrationReport()

        coordinator = MigrationCoordinator(
            source=self.local,
            target=await self._remote_for(session),
            bus=self.bus,
            context_id=self.context_id,
        )
        return await coordinator.run()

    async def migrate_from_local_storage(self) -> int:
        """Migrate and return the number of newly migrated projects."""
        report = await self.migrate()
        return report.migrated_count

    async def close(self) -> None:
        """Release the remote store's HTTP client, if any."""
        if self._remote is not None:
            await self._remote.close()
            self._remote = None
