"""Change notification bus.

Two channels carry "the project collection changed" signals, because no
single signal covers both cases:

- ``projects-changed-local``: the shared local key was written by another
  context. Published by the storage change watcher, never in the context
  that performed the write.
- ``projects-changed-app``: published explicitly by the in-process code path
  that performed a mutation.

Subscribers re-fetch the collection on receipt instead of applying a diff,
so events carry no payload beyond their origin.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable

import structlog

logger = structlog.get_logger(__name__)


class ChangeChannel(str, Enum):
    """Channels a change signal travels on."""

    LOCAL = "projects-changed-local"
    APP = "projects-changed-app"


@dataclass(frozen=True)
class ChangeEvent:
    """A collection change signal.

    Attributes:
        channel: Channel the event was published on
        source: Context id of the writer, if known
        project_id: Id of the changed project, None for collection-wide changes
        timestamp: When the event was published
    """

    channel: ChangeChannel
    source: str | None = None
    project_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class Subscription:
    """Handle returned by ``subscribe``; dispose it on teardown."""

    def __init__(
        self,
        bus: ChangeNotificationBus,
        handler: ChangeHandler,
        channels: frozenset[ChangeChannel],
    ) -> None:
        self._bus = bus
        self.handler = handler
        self.channels = channels
        self.active = True

    def dispose(self) -> None:
        """Stop delivering events to the handler. Safe to call twice."""
        if self.active:
            self.active = False
            self._bus._remove(self)


class ChangeNotificationBus:
    """Publish/subscribe service for collection change signals.

    One bus exists per context. Handlers run sequentially in subscription
    order; a failing handler is logged and does not affect the publisher or
    the remaining handlers.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        handler: ChangeHandler,
        channels: Iterable[ChangeChannel] | None = None,
    ) -> Subscription:
        """Register a handler.

        Args:
            handler: Coroutine function called with each event
            channels: Channels to listen on; both when omitted

        Returns:
            Subscription to dispose when the consumer is torn down.
        """
        selected = frozenset(channels) if channels is not None else frozenset(ChangeChannel)
        subscription = Subscription(self, handler, selected)
        self._subscriptions.append(subscription)
        logger.debug(
            "bus_subscribed",
            channels=sorted(c.value for c in selected),
            total_subscribers=len(self._subscriptions),
        )
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        logger.debug("bus_unsubscribed", total_subscribers=len(self._subscriptions))

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver an event to every active subscriber of its channel.

        Returns:
            Number of handlers that received the event.
        """
        async with self._lock:
            targets = [s for s in self._subscriptions if event.channel in s.channels]

        delivered = 0
        for subscription in targets:
            # Disposed while an earlier handler ran
            if not subscription.active:
                continue
            try:
                await subscription.handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    "bus_handler_error",
                    channel=event.channel.value,
                    error=str(e),
                    exc_info=True,
                )

        logger.debug(
            "bus_event_published",
            channel=event.channel.value,
            source=event.source,
            delivered=delivered,
        )
        return delivered

    async def publish_app_change(
        self, source: str | None = None, project_id: str | None = None
    ) -> int:
        """Publish on the in-process channel after a mutation."""
        return await self.publish(
            ChangeEvent(channel=ChangeChannel.APP, source=source, project_id=project_id)
        )
