"""Local-to-remote migration.

When a session becomes authenticated, projects created while signed out are
copied from the local store into the user's remote collection. Each record
keeps its id, content and timestamps.

Properties of a run:
- Idempotent: records already present remotely are skipped, so a second run
  with no new local records migrates nothing.
- Partial-failure tolerant: a record that fails is logged and left eligible
  for the next run; the remaining records are still attempted.
- Non-destructive: the local copy is never deleted or modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import structlog

from docflow.errors import DuplicateProjectError, MigrationItemError
from docflow.models import Project
from docflow.storage.base import ProjectStore
from docflow.sync.bus import ChangeNotificationBus

logger = structlog.get_logger(__name__)


class MigrationTarget(Protocol):
    """Store that can receive migrated records without re-stamping them."""

    async def exists(self, project_id: str) -> bool: ...

    async def insert(self, project: Project) -> Project: ...


@dataclass
class MigrationReport:
    """Outcome of one migration run.

    Attributes:
        migrated: Ids inserted into the target during this run
        skipped: Ids already present in the target
        errors: One error per record that failed
    """

    migrated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[MigrationItemError] = field(default_factory=list)

    @property
    def migrated_count(self) -> int:
        return len(self.migrated)

    @property
    def failed(self) -> list[str]:
        return [e.project_id for e in self.errors]


class MigrationCoordinator:
    """Copies local records into a remote collection.

    Runs as an independent task and may interleave with ordinary reads and
    writes. A record briefly visible in both stores, or in only one, is an
    expected transient state and not a duplicate.
    """

    def __init__(
        self,
        source: ProjectStore,
        target: MigrationTarget,
        bus: ChangeNotificationBus | None = None,
        context_id: str | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            source: Local store to read from
            target: Remote store to insert into
            bus: Bus notified once when anything was migrated
            context_id: Context id reported as the event source
        """
        self.source = source
        self.target = target
        self.bus = bus
        self.context_id = context_id

    async def _migrate_one(self, project: Project, report: MigrationReport) -> None:
        if await self.target.exists(project.id):
            report.skipped.append(project.id)
            return

        try:
            await self.target.insert(project)
        except DuplicateProjectError:
            # Another context inserted it between the check and the insert
            report.skipped.append(project.id)
            logger.info("migration_item_raced", project_id=project.id)
            return

        report.migrated.append(project.id)

    async def run(self) -> MigrationReport:
        """Migrate every local record missing from the target.

        Errors reading the local collection propagate; errors on individual
        records are collected in the report.
        """
        report = MigrationReport()
        projects = await self.source.get_all()
        if not projects:
            return report

        for project in projects:
            try:
                await self._migrate_one(project, report)
            except Exception as e:
                error = MigrationItemError(project.id, e)
                report.errors.append(error)
                logger.error(
                    "migration_item_failed",
                    project_id=project.id,
                    error=str(e),
                )

        logger.info(
            "migration_completed",
            migrated=report.migrated_count,
            skipped=len(report.skipped),
            failed=len(report.errors),
        )

        if report.migrated and self.bus is not None:
            await self.bus.publish_app_change(source=self.context_id)

        return report

    async def migrate_from_local_storage(self) -> int:
        """Run a migration and return the number of records inserted."""
        report = await self.run()
        return report.migrated_count
