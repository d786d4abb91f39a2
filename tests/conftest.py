"""Shared fixtures and in-memory store doubles.

``InMemoryStore`` implements the same contract as the local and remote
adapters (plus ``insert`` for migration targets), with switches to simulate
an unreachable backend or a record that fails to insert.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from docflow.errors import BackendUnavailableError, DuplicateProjectError, RemoteStoreError
from docflow.models import Document, Project, ProjectType
from docflow.session import AuthSession

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class InMemoryStore:
    """Dictionary-backed project store."""

    def __init__(
        self,
        name: str = "memory",
        context_id: str = "ctx-test",
        session: AuthSession | None = None,
    ) -> None:
        self.name = name
        self.context_id = context_id
        self.session = session
        self.records: dict[str, Project] = {}
        self.unavailable = False
        self.fail_insert_ids: set[str] = set()
        self.insert_calls: list[str] = []
        self.exists_calls: list[str] = []
        self.closed = False

    def _check(self) -> None:
        if self.unavailable:
            raise BackendUnavailableError(f"{self.name} store is down")

    async def get_all(self) -> list[Project]:
        self._check()
        return list(self.records.values())

    async def get(self, project_id: str) -> Project | None:
        self._check()
        return self.records.get(project_id)

    async def exists(self, project_id: str) -> bool:
        self._check()
        self.exists_calls.append(project_id)
        return project_id in self.records

    async def put(self, project: Project) -> Project:
        self._check()
        self.records[project.id] = project
        return project

    async def insert(self, project: Project) -> Project:
        self._check()
        self.insert_calls.append(project.id)
        if project.id in self.fail_insert_ids:
            raise RemoteStoreError(f"insert of {project.id} rejected", status_code=400)
        if project.id in self.records:
            raise DuplicateProjectError(f"{project.id} exists", status_code=409)
        self.records[project.id] = project
        return project

    async def delete(self, project_id: str) -> bool:
        self._check()
        return self.records.pop(project_id, None) is not None

    async def clear(self) -> None:
        self._check()
        self.records.clear()

    async def close(self) -> None:
        self.closed = True


ProjectFactory = Callable[..., Project]


@pytest.fixture
def make_project() -> ProjectFactory:
    """Factory for projects with deterministic timestamps."""

    def _make(
        project_id: str = "p-1",
        title: str = "Checkout flow",
        project_type: ProjectType = ProjectType.PRD,
        minutes: int = 0,
        documents: list[Document] | None = None,
        description: str = "",
    ) -> Project:
        stamp = BASE_TIME + timedelta(minutes=minutes)
        return Project(
            id=project_id,
            title=title,
            type=project_type,
            description=description,
            documents=documents or [],
            created_at=stamp,
            updated_at=stamp,
        )

    return _make


@pytest.fixture
def auth_session() -> AuthSession:
    """A signed-in user."""
    return AuthSession(user_id="user-1", access_token="token-abc")


@pytest.fixture
def store_factory() -> type[InMemoryStore]:
    """The in-memory store class, for tests that need several instances."""
    return InMemoryStore
