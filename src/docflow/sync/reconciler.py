"""Polling reconciler.

A fixed-interval, unconditional re-fetch that runs alongside the change bus.
It covers mutation paths that forget to publish a change event. The cost is
a constant low-rate stream of reads, acceptable for small collections.
Consumers registered here are refreshed even when nothing changed, so they
must tolerate being handed identical data.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

RefreshCallback = Callable[[], Awaitable[None]]


class ReconcilerRegistration:
    """Handle returned by ``register``; dispose it on teardown."""

    def __init__(self, reconciler: PollingReconciler, callback: RefreshCallback) -> None:
        self._reconciler = reconciler
        self.callback = callback
        self.active = True

    def dispose(self) -> None:
        if self.active:
            self.active = False
            self._reconciler._unregister(self)


class PollingReconciler:
    """Calls every registered refresh callback on a fixed interval."""

    def __init__(self, interval: float = 1.0) -> None:
        """Initialize the reconciler.

        Args:
            interval: Seconds between reconciliation passes
        """
        if interval <= 0:
            raise ValueError(f"Reconciler interval must be positive, got {interval}")
        self.interval = interval
        self._registrations: list[ReconcilerRegistration] = []
        self._running = False
        self._poll_task: asyncio.Task[None] | None = None
        self.passes = 0

    @property
    def running(self) -> bool:
        return self._running

    def register(self, callback: RefreshCallback) -> ReconcilerRegistration:
        """Add a refresh callback to every future pass."""
        registration = ReconcilerRegistration(self, callback)
        self._registrations.append(registration)
        return registration

    def _unregister(self, registration: ReconcilerRegistration) -> None:
        if registration in self._registrations:
            self._registrations.remove(registration)

    async def reconcile(self) -> int:
        """Run one pass over all registered callbacks.

        Returns:
            Number of callbacks that completed without error.
        """
        completed = 0
        for registration in list(self._registrations):
            if not registration.active:
                continue
            try:
                await registration.callback()
                completed += 1
            except Exception as e:
                logger.error("reconcile_callback_error", error=str(e), exc_info=True)
        self.passes += 1
        return completed

    async def start(self) -> None:
        """Start the polling loop. No-op if already running."""
        if self._running:
            logger.warning("reconciler_already_running")
            return

        self._running = True
        self._poll_task = asyncio.create_task(self._polling_loop())
        logger.info("reconciler_started", interval=self.interval)

    async def stop(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        if not self._running:
            return

        self._running = False
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        logger.info("reconciler_stopped", passes=self.passes)

    async def _polling_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                await self.reconcile()
            except asyncio.CancelledError:
                break
