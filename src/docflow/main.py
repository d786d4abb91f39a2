"""Main CLI entry point for Docflow.

This module provides the main Typer application and the application context
that wires configuration, the local store, the remote store, the change bus
and the repository together.

Usage:
    docflow project list --sort name
    docflow project migrate
    docflow project watch
"""

from __future__ import annotations

import sys
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, AsyncIterator, Optional

import httpx
import structlog
import typer
from rich.console import Console

from docflow.cli import project as project_cli
from docflow.config import DocflowConfig, RemoteStoreConfig, load_config
from docflow.database.connection import get_engine, get_session_factory, init_schema
from docflow.logging import set_context_id, setup_logging
from docflow.repository import ProjectRepository
from docflow.session import AuthSession, SessionState
from docflow.storage.local import LocalProjectStore
from docflow.storage.remote import RemoteProjectStore
from docflow.sync.bus import ChangeNotificationBus

app = typer.Typer(
    name="docflow",
    help="Docflow: documentation projects, local and in the cloud",
    no_args_is_help=True,
)

app.add_typer(project_cli.app, name="project", help="Manage projects")

console = Console()
logger = structlog.get_logger(__name__)


def session_from_config(config: RemoteStoreConfig) -> AuthSession | None:
    """Build the configured session, or None when signed out."""
    if not config.configured or not config.user_id or not config.access_token:
        return None
    return AuthSession(user_id=config.user_id, access_token=config.access_token)


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Docflow configuration
        context_id: Id of this process as a writer of the local store
        session_state: Current authentication session
        bus: Change bus of this context
    """

    def __init__(self, config: DocflowConfig, context_id: str | None = None):
        self.config = config
        self.context_id = context_id or f"cli-{uuid.uuid4().hex[:8]}"
        self.session_state = SessionState(session_from_config(config.remote))
        self.bus = ChangeNotificationBus()

    @asynccontextmanager
    async def open_repository(self, migrate: bool = True) -> AsyncIterator[ProjectRepository]:
        """Open the stores and yield a repository bound to them.

        When a session exists and ``sync.migrate_on_start`` is set, local
        projects are migrated before the repository is handed out.
        """
        set_context_id(self.context_id)
        engine = get_engine(self.config.local)
        client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.remote.timeout_seconds))
        try:
            await init_schema(engine)
            local = LocalProjectStore(
                get_session_factory(engine),
                context_id=self.context_id,
                storage_key=self.config.local.storage_key,
            )

            remote_config = self.config.remote

            def remote_factory(session: AuthSession) -> RemoteProjectStore:
                return RemoteProjectStore(remote_config, session, client=client)

            repository = ProjectRepository(
                local,
                self.session_state,
                remote_factory if remote_config.configured else None,
                self.bus,
            )
            if migrate and self.config.sync.migrate_on_start and self.session_state.authenticated:
                migrated = await repository.migrate_from_local_storage()
                if migrated:
                    console.print(f"[green]Migrated {migrated} local project(s) to the cloud[/green]")
            yield repository
        finally:
            await client.aclose()
            await engine.dispose()


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: DocflowConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    log_config = config.logging
    if verbose:
        log_config = log_config.model_copy(update={"level": "DEBUG"})
    setup_logging(log_config, stream=sys.stderr)

    initialize_context(config)

    if verbose:
        logger.debug("debug_logging_enabled")


if __name__ == "__main__":
    app()
