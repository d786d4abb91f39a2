"""Contract shared by the local and remote project stores."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from docflow.models import Project


@runtime_checkable
class ProjectStore(Protocol):
    """Uniform persistence contract used by the repository facade.

    Adapters return None for absent records; raising ``ProjectNotFoundError``
    is the facade's job. ``put`` stores exactly what it is given.
    """

    name: str

    async def get_all(self) -> list[Project]: ...

    async def get(self, project_id: str) -> Project | None: ...

    async def exists(self, project_id: str) -> bool: ...

    async def put(self, project: Project) -> Project: ...

    async def delete(self, project_id: str) -> bool: ...

    async def clear(self) -> None: ...
