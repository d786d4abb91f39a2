"""Project management CLI commands.

This module provides CLI commands for listing, inspecting, creating and
deleting projects, migrating local projects to the cloud, and watching the
collection for changes.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docflow.errors import ProjectNotFoundError, ProjectValidationError, StorageError
from docflow.models import Project, ProjectType
from docflow.presentation import SortKey, filter_projects, format_date, sort_projects

app = typer.Typer(help="Project management commands")
console = Console()


def _project_table(projects: list[Project], title: str = "Projects") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Type", style="magenta")
    table.add_column("Docs", justify="right")
    table.add_column("Updated", style="dim")

    for p in projects:
        table.add_row(
            p.id,
            p.title,
            p.type.value,
            str(len(p.documents)),
            format_date(p.updated_at),
        )
    return table


@app.command("list")
def list_projects(
    sort: Annotated[
        SortKey,
        typer.Option("--sort", "-s", help="Sort by date, name or type"),
    ] = SortKey.DATE,
    project_type: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Only show one document type"),
    ] = None,
    search: Annotated[
        str,
        typer.Option("--search", "-q", help="Search titles and descriptions"),
    ] = "",
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """List projects of the active backend."""
    from docflow.main import get_app_context

    ctx = get_app_context()

    if project_type is not None and project_type != "all":
        try:
            ProjectType(project_type)
        except ValueError:
            valid = ", ".join(t.value for t in ProjectType)
            console.print(f"[red]Invalid type:[/red] {project_type}. Valid values: {valid}")
            raise typer.Exit(code=1)

    async def _list_projects() -> list[Project]:
        async with ctx.open_repository() as repository:
            return await repository.get_all()

    try:
        projects = asyncio.run(_list_projects())
    except StorageError as e:
        console.print(f"[red]Error listing projects:[/red] {e}")
        raise typer.Exit(code=1)

    projects = sort_projects(filter_projects(projects, search, project_type), sort)

    if format == "json":
        output = [p.to_storage() for p in projects]
        typer.echo(json.dumps(output, indent=2))
        return

    if not projects:
        console.print("[yellow]No projects found[/yellow]")
        return
    console.print(_project_table(projects))


@app.command()
def show(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
) -> None:
    """Show one project and its documents."""
    from docflow.main import get_app_context

    ctx = get_app_context()

    async def _get_project() -> Project:
        async with ctx.open_repository() as repository:
            return await repository.get(project_id)

    try:
        project = asyncio.run(_get_project())
    except ProjectNotFoundError:
        console.print(f"[red]Project not found:[/red] {project_id}")
        console.print("[dim]Run 'docflow project list' to see available projects.[/dim]")
        raise typer.Exit(code=1)
    except StorageError as e:
        console.print(f"[red]Error loading project:[/red] {e}")
        raise typer.Exit(code=1)

    lines = [
        f"[bold]ID:[/bold] {project.id}",
        f"[bold]Type:[/bold] {project.type.value}",
        f"[bold]Created:[/bold] {project.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"[bold]Updated:[/bold] {format_date(project.updated_at)}",
    ]
    if project.description:
        lines.append(f"\n{project.description}")
    console.print(Panel("\n".join(lines), title=project.title, border_style="cyan"))

    for index, document in enumerate(project.documents, start=1):
        console.print(
            f"  {index}. [magenta]{document.type.value}[/magenta] "
            f"[dim]({len(document.content)} chars, {format_date(document.generated_at)})[/dim]"
        )


@app.command()
def create(
    title: Annotated[str, typer.Argument(help="Project title")],
    project_type: Annotated[
        ProjectType,
        typer.Option("--type", "-t", help="Primary document type"),
    ] = ProjectType.PRD,
    description: Annotated[
        str,
        typer.Option("--description", "-d", help="Short description"),
    ] = "",
    content_file: Annotated[
        Optional[Path],
        typer.Option(
            "--content-file",
            help="File holding the primary document content",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
) -> None:
    """Create a project in the active backend."""
    from docflow.main import get_app_context

    ctx = get_app_context()
    content = content_file.read_text(encoding="utf-8") if content_file else ""

    async def _create_project() -> Project:
        async with ctx.open_repository() as repository:
            return await repository.create(
                title, project_type, description=description, content=content
            )

    try:
        project = asyncio.run(_create_project())
    except ProjectValidationError as e:
        console.print(f"[red]Invalid project:[/red] {e}")
        raise typer.Exit(code=1)
    except StorageError as e:
        console.print(f"[red]Error creating project:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"[green]Project created successfully![/green]\n\n"
            f"[bold]ID:[/bold] {project.id}\n"
            f"[bold]Title:[/bold] {project.title}\n"
            f"[bold]Type:[/bold] {project.type.value}",
            title="Project Created",
            border_style="green",
        )
    )


@app.command()
def delete(
    project_id: Annotated[str, typer.Argument(help="Project ID")],
) -> None:
    """Delete a project. Deleting an unknown id is not an error."""
    from docflow.main import get_app_context

    ctx = get_app_context()

    async def _delete_project() -> None:
        async with ctx.open_repository() as repository:
            await repository.delete(project_id)

    try:
        asyncio.run(_delete_project())
    except StorageError as e:
        console.print(f"[yellow]Warning: could not delete project:[/yellow] {e}")
        return

    console.print(f"[green]Deleted[/green] {project_id}")


@app.command()
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt"),
    ] = False,
) -> None:
    """Delete every project in the active backend."""
    from docflow.main import get_app_context

    ctx = get_app_context()

    if not yes and not typer.confirm(
        "Are you sure you want to delete all projects? This action cannot be undone."
    ):
        console.print("[dim]Aborted[/dim]")
        return

    async def _clear_projects() -> None:
        async with ctx.open_repository() as repository:
            await repository.clear()

    try:
        asyncio.run(_clear_projects())
    except StorageError as e:
        console.print(f"[yellow]Warning: could not clear projects:[/yellow] {e}")
        return

    console.print("[green]All projects deleted[/green]")


@app.command()
def migrate() -> None:
    """Copy local projects into the signed-in user's cloud collection."""
    from docflow.main import get_app_context

    ctx = get_app_context()

    if not ctx.session_state.authenticated:
        console.print("[yellow]Not signed in; nothing to migrate[/yellow]")
        return

    async def _migrate():
        async with ctx.open_repository(migrate=False) as repository:
            return await repository.migrate()

    try:
        report = asyncio.run(_migrate())
    except StorageError as e:
        console.print(f"[red]Migration failed:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        f"[green]Migrated:[/green] {report.migrated_count}  "
        f"[dim]Skipped:[/dim] {len(report.skipped)}  "
        f"[red]Failed:[/red] {len(report.errors)}"
    )
    for error in report.errors:
        console.print(f"  [red]-[/red] {error}")


@app.command()
def watch(
    sort: Annotated[
        SortKey,
        typer.Option("--sort", "-s", help="Sort by date, name or type"),
    ] = SortKey.DATE,
    duration: Annotated[
        float,
        typer.Option("--duration", help="Stop after this many seconds (0 runs until interrupted)"),
    ] = 0.0,
) -> None:
    """Print the project list whenever it changes."""
    from docflow.main import get_app_context
    from docflow.sync.live import LiveProjectList
    from docflow.sync.reconciler import PollingReconciler
    from docflow.sync.watcher import StorageChangeWatcher

    ctx = get_app_context()
    sync_config = ctx.config.sync

    async def _watch() -> None:
        async with ctx.open_repository() as repository:
            last_seen: list[tuple[str, str]] | None = None

            async def _render(projects: list[Project]) -> None:
                nonlocal last_seen
                fingerprint = [(p.id, p.updated_at.isoformat()) for p in projects]
                if fingerprint == last_seen:
                    return
                last_seen = fingerprint
                console.print(_project_table(projects, title=f"Projects ({len(projects)})"))

            reconciler = PollingReconciler(sync_config.poll_interval_seconds)
            watcher = StorageChangeWatcher(
                repository.local, ctx.bus, sync_config.watch_interval_seconds
            )
            view = LiveProjectList(
                repository, ctx.bus, reconciler, sort_by=sort, on_update=_render
            )
            await view.start()
            await reconciler.start()
            await watcher.start()
            try:
                if duration > 0:
                    await asyncio.sleep(duration)
                else:
                    await asyncio.Event().wait()
            finally:
                view.close()
                await watcher.stop()
                await reconciler.stop()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped watching[/dim]")
