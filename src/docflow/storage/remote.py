"""Remote project store over a PostgREST-compatible API.

Each project is one row of a per-user collection, addressed by its id and
scoped by ``user_id``. The adapter never retries: a transport failure or a
5xx answer surfaces as ``BackendUnavailableError`` and the caller decides
what to do next.

Example usage:
    >>> from docflow.config import RemoteStoreConfig
    >>> from docflow.session import AuthSession
    >>> store = RemoteProjectStore(config, AuthSession("user-1", "token"))
    >>> projects = await store.get_all()
    >>> await store.close()
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from docflow.config import RemoteStoreConfig
from docflow.errors import (
    BackendUnavailableError,
    DuplicateProjectError,
    RemoteStoreError,
)
from docflow.models import Document, Project
from docflow.session import AuthSession

logger = structlog.get_logger(__name__)


def project_to_row(project: Project, user_id: str) -> dict[str, Any]:
    """Convert a project to a remote row."""
    return {
        "id": project.id,
        "user_id": user_id,
        "title": project.title,
        "type": project.type.value,
        "description": project.description,
        "content": project.content,
        "documents": [doc.to_storage() for doc in project.documents],
        "site_flow": project.site_flow,
        "created_at": project.created_at.isoformat(),
        "updated_at": project.updated_at.isoformat(),
    }


def row_to_project(row: dict[str, Any]) -> Project:
    """Convert a remote row to a project.

    Raises:
        RemoteStoreError: If the row is missing columns or holds invalid values
    """
    try:
        return _build_project(row)
    except (KeyError, TypeError, ValidationError) as e:
        logger.error("remote_row_unreadable", project_id=row.get("id"), error=str(e))
        raise RemoteStoreError(f"Remote row {row.get('id')!r} is malformed: {e}") from e


def _build_project(row: dict[str, Any]) -> Project:
    return Project(
        id=row["id"],
        title=row["title"],
        type=row["type"],
        description=row.get("description") or "",
        content=row.get("content") or "",
        documents=[Document.model_validate(doc) for doc in row.get("documents") or []],
        site_flow=row.get("site_flow"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class RemoteProjectStore:
    """Project store bound to one authenticated user.

    Attributes:
        name: Backend name used in logs
        config: Remote store configuration
        session: Session whose collection this store reads and writes
    """

    name = "remote"

    def __init__(
        self,
        config: RemoteStoreConfig,
        session: AuthSession,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the remote store.

        Args:
            config: Remote endpoint, key and table
            session: Authenticated session supplying user id and token
            client: Optional shared HTTP client; created lazily if omitted
        """
        if not config.url:
            raise ValueError("Remote store URL is not configured")
        self.config = config
        self.session = session
        self._client = client
        self._owns_client = client is None
        self._endpoint = f"{config.url}/rest/v1/{config.table}"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds)
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {self.session.access_token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _scope(self, **filters: str) -> dict[str, str]:
        params = {column: f"eq.{value}" for column, value in filters.items()}
        params["user_id"] = f"eq.{self.session.user_id}"
        return params

    async def _request(
        self,
        method: str,
        params: dict[str, str],
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Send one request and decode the JSON answer.

        Raises:
            BackendUnavailableError: On transport failure or a 5xx answer
            DuplicateProjectError: On a 409 conflict
            RemoteStoreError: On any other non-2xx answer
        """
        client = self._get_client()
        try:
            response = await client.request(
                method,
                self._endpoint,
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.RequestError as e:
            logger.error("remote_request_error", method=method, error=str(e))
            raise BackendUnavailableError(f"Remote store unreachable: {e}") from e

        if response.status_code >= 500:
            logger.error(
                "remote_unavailable",
                method=method,
                status_code=response.status_code,
            )
            raise BackendUnavailableError(
                f"Remote store returned {response.status_code}"
            )
        if response.status_code == 409:
            raise DuplicateProjectError(
                f"Remote conflict: {response.text[:200]}",
                status_code=response.status_code,
            )
        if not response.is_success:
            logger.warning(
                "remote_request_rejected",
                method=method,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise RemoteStoreError(
                f"Remote store rejected {method}: {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        return response.json()

    async def get_all(self) -> list[Project]:
        """Return every project of the session user."""
        rows = await self._request("GET", {"select": "*", **self._scope()})
        return [row_to_project(row) for row in rows or []]

    async def get(self, project_id: str) -> Project | None:
        """Return one project, or None if it is absent."""
        rows = await self._request("GET", {"select": "*", **self._scope(id=project_id)})
        if not rows:
            return None
        return row_to_project(rows[0])

    async def exists(self, project_id: str) -> bool:
        """Check for a project id, fetching only the id column."""
        rows = await self._request(
            "GET", {"select": "id", "limit": "1", **self._scope(id=project_id)}
        )
        return bool(rows)

    async def insert(self, project: Project) -> Project:
        """Insert a new row, keeping the project's id and timestamps.

        Raises:
            DuplicateProjectError: If the id already exists
        """
        rows = await self._request(
            "POST",
            {},
            json=project_to_row(project, self.session.user_id),
            prefer="return=representation",
        )
        logger.info("remote_project_inserted", project_id=project.id)
        return row_to_project(rows[0]) if rows else project

    async def put(self, project: Project) -> Project:
        """Insert or replace a row by id."""
        rows = await self._request(
            "POST",
            {"on_conflict": "id"},
            json=project_to_row(project, self.session.user_id),
            prefer="resolution=merge-duplicates,return=representation",
        )
        return row_to_project(rows[0]) if rows else project

    async def delete(self, project_id: str) -> bool:
        """Delete a row.

        Returns:
            True if a row was removed, False if the id was absent.
        """
        rows = await self._request(
            "DELETE", self._scope(id=project_id), prefer="return=representation"
        )
        return bool(rows)

    async def clear(self) -> None:
        """Delete every row of the session user."""
        await self._request("DELETE", self._scope())
