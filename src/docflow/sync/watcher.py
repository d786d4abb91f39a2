"""Cross-context storage change watcher.

Contexts sharing a local store have no shared process to signal each other
through. Each context runs a watcher that polls the write stamp of the
shared key and publishes ``projects-changed-local`` on its own bus when the
version moved past a write this context did not make. Writes made by the
watching context itself are ignored; those are covered by the in-process
channel.
"""

from __future__ import annotations

import asyncio

import structlog

from docflow.database.queries.local_storage import EntryStamp
from docflow.storage.local import LocalProjectStore
from docflow.sync.bus import ChangeChannel, ChangeEvent, ChangeNotificationBus

logger = structlog.get_logger(__name__)


class StorageChangeWatcher:
    """Background task turning foreign writes into local change events."""

    def __init__(
        self,
        store: LocalProjectStore,
        bus: ChangeNotificationBus,
        check_interval: float = 0.5,
    ) -> None:
        """Initialize the watcher.

        Args:
            store: Local store of the watching context
            bus: Bus of the watching context
            check_interval: Seconds between stamp checks
        """
        self.store = store
        self.bus = bus
        self.check_interval = check_interval
        self._last_stamp: EntryStamp | None = None
        self._primed = False
        self._running = False
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def prime(self) -> None:
        """Record the current stamp so pre-existing data is not reported."""
        self._last_stamp = await self.store.stamp()
        if self._last_stamp is not None:
            self.store.forget_versions(self._last_stamp.version)
        self._primed = True

    async def check(self) -> bool:
        """Compare the stored stamp against the last one seen.

        Every version between the two stamps that this context did not
        write counts as a foreign write, even when this context wrote last.

        Returns:
            True if a foreign write was detected and published.
        """
        if not self._primed:
            await self.prime()
            return False

        stamp = await self.store.stamp()
        previous = self._last_stamp
        self._last_stamp = stamp

        if stamp == previous:
            return False

        if stamp is None:
            # Key removed outside the adapter; writer unknown
            source = None
            foreign: list[int] = []
        else:
            # A lower version means the key was recreated
            after = 0
            if previous is not None and stamp.version > previous.version:
                after = previous.version
            foreign = self.store.foreign_versions(after, stamp.version)
            self.store.forget_versions(stamp.version)
            if not foreign:
                return False
            source = stamp.writer_id if stamp.writer_id != self.store.context_id else None

        logger.debug(
            "foreign_write_detected",
            key=self.store.storage_key,
            writer_id=source,
            versions=foreign,
        )
        await self.bus.publish(ChangeEvent(channel=ChangeChannel.LOCAL, source=source))
        return True

    async def start(self) -> None:
        """Start the watch loop. No-op if already running."""
        if self._running:
            logger.warning("watcher_already_running")
            return

        await self.prime()
        self._running = True
        self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info("watcher_started", check_interval=self.check_interval)

    async def stop(self) -> None:
        """Cancel the watch loop and wait for it to finish."""
        if not self._running:
            return

        self._running = False
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        logger.info("watcher_stopped")

    async def _watch_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.check_interval)
                await self.check()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("watcher_loop_error", error=str(e), exc_info=True)
