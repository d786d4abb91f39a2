"""Self-refreshing project views.

Live views are the consumers of the change bus and the reconciler. On every
signal they re-fetch the whole collection (or the whole record) through the
repository instead of applying an incremental diff.

A view that is closed while a fetch is pending discards the result, and so
does a fetch overtaken by a newer one. Nothing is retried after a discard.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from docflow.errors import BackendUnavailableError, ProjectNotFoundError
from docflow.models import Project
from docflow.presentation import SortKey, sort_projects
from docflow.sync.bus import ChangeEvent, ChangeNotificationBus, Subscription
from docflow.sync.reconciler import PollingReconciler, ReconcilerRegistration

if TYPE_CHECKING:
    from docflow.repository import ProjectRepository

logger = structlog.get_logger(__name__)


class _LiveView:
    """Subscription bookkeeping shared by list and detail views."""

    def __init__(
        self,
        repository: ProjectRepository,
        bus: ChangeNotificationBus,
        reconciler: PollingReconciler | None = None,
    ) -> None:
        self.repository = repository
        self.bus = bus
        self.reconciler = reconciler
        self.closed = False
        self.refresh_count = 0
        self.discarded_count = 0
        self.last_error: Exception | None = None
        self._generation = 0
        self._subscription: Subscription | None = None
        self._registration: ReconcilerRegistration | None = None

    async def start(self) -> None:
        """Subscribe to both bus channels and the reconciler, then load."""
        self._subscription = self.bus.subscribe(self._on_change)
        if self.reconciler is not None:
            self._registration = self.reconciler.register(self.refresh)
        await self.refresh()

    async def _on_change(self, event: ChangeEvent) -> None:
        await self.refresh()

    def close(self) -> None:
        """Unsubscribe everywhere; pending fetch results will be dropped."""
        if self.closed:
            return
        self.closed = True
        if self._subscription is not None:
            self._subscription.dispose()
        if self._registration is not None:
            self._registration.dispose()

    def _begin_fetch(self) -> int:
        self._generation += 1
        return self._generation

    def _is_stale(self, generation: int) -> bool:
        if self.closed or generation != self._generation:
            self.discarded_count += 1
            logger.debug("stale_fetch_discarded", view=type(self).__name__)
            return True
        return False

    async def refresh(self) -> None:
        raise NotImplementedError


class LiveProjectList(_LiveView):
    """The project collection, kept current and sorted."""

    def __init__(
        self,
        repository: ProjectRepository,
        bus: ChangeNotificationBus,
        reconciler: PollingReconciler | None = None,
        sort_by: SortKey | str = SortKey.DATE,
        on_update: Callable[[list[Project]], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(repository, bus, reconciler)
        self.sort_by = SortKey(sort_by)
        self.on_update = on_update
        self._projects: list[Project] = []

    @property
    def projects(self) -> list[Project]:
        return list(self._projects)

    async def refresh(self) -> None:
        """Re-fetch the whole collection.

        When the remote store is unreachable the previous data is kept and
        the error is recorded in ``last_error``.
        """
        if self.closed:
            return
        generation = self._begin_fetch()
        try:
            projects = await self.repository.get_all()
        except BackendUnavailableError as e:
            if not self._is_stale(generation):
                self.last_error = e
                logger.warning("project_list_refresh_failed", error=str(e))
            return

        if self._is_stale(generation):
            return

        self.last_error = None
        self._projects = sort_projects(projects, self.sort_by)
        self.refresh_count += 1
        if self.on_update is not None:
            await self.on_update(self.projects)


class LiveProjectDetail(_LiveView):
    """One project, kept current.

    When the project disappears the view closes itself and calls
    ``on_missing`` so the caller can redirect to a safe default view.
    """

    def __init__(
        self,
        repository: ProjectRepository,
        bus: ChangeNotificationBus,
        project_id: str,
        reconciler: PollingReconciler | None = None,
        on_missing: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        super().__init__(repository, bus, reconciler)
        self.project_id = project_id
        self.on_missing = on_missing
        self.project: Project | None = None
        self.missing = False

    async def refresh(self) -> None:
        """Re-fetch the record; report it missing if it is gone."""
        if self.closed:
            return
        generation = self._begin_fetch()
        try:
            project = await self.repository.get(self.project_id)
        except ProjectNotFoundError:
            if self._is_stale(generation):
                return
            self.project = None
            self.missing = True
            logger.info("project_view_missing", project_id=self.project_id)
            self.close()
            if self.on_missing is not None:
                await self.on_missing(self.project_id)
            return
        except BackendUnavailableError as e:
            if not self._is_stale(generation):
                self.last_error = e
                logger.warning(
                    "project_detail_refresh_failed",
                    project_id=self.project_id,
                    error=str(e),
                )
            return

        if self._is_stale(generation):
            return

        self.last_error = None
        self.project = project
        self.refresh_count += 1
