"""Error taxonomy for the project storage layer.

Adapter errors propagate unchanged through the repository facade. Only the
migration coordinator catches errors, one record at a time.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for project storage errors."""

    pass


class ProjectValidationError(StorageError):
    """Raised when a project is malformed, e.g. its title is empty."""

    pass


class ProjectNotFoundError(StorageError):
    """Raised when a project id is absent from the active backend."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class BackendUnavailableError(StorageError):
    """Raised when the remote store cannot be reached.

    Never answered by falling back to the local store.
    """

    pass


class RemoteStoreError(StorageError):
    """Raised when the remote store rejects a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DuplicateProjectError(RemoteStoreError):
    """Raised when inserting an id that already exists remotely."""

    pass


class MigrationItemError(StorageError):
    """A single record failed to migrate; the batch continues."""

    def __init__(self, project_id: str, cause: Exception) -> None:
        super().__init__(f"Failed to migrate project {project_id}: {cause}")
        self.project_id = project_id
        self.cause = cause
