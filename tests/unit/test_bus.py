"""Unit tests for the change notification bus."""

from __future__ import annotations

import pytest

from docflow.sync.bus import ChangeChannel, ChangeEvent, ChangeNotificationBus


@pytest.fixture
def bus() -> ChangeNotificationBus:
    return ChangeNotificationBus()


class Recorder:
    """Handler that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []

    async def __call__(self, event: ChangeEvent) -> None:
        self.events.append(event)


@pytest.mark.asyncio
async def test_default_subscription_hears_both_channels(bus) -> None:
    """Subscribing without channels listens on local and app."""
    recorder = Recorder()
    bus.subscribe(recorder)

    await bus.publish(ChangeEvent(channel=ChangeChannel.LOCAL, source="tab-2"))
    await bus.publish_app_change(source="tab-1", project_id="p-1")

    assert [e.channel for e in recorder.events] == [ChangeChannel.LOCAL, ChangeChannel.APP]
    assert recorder.events[1].project_id == "p-1"


@pytest.mark.asyncio
async def test_channel_filter(bus) -> None:
    """A handler only receives events of its channels."""
    local_only = Recorder()
    bus.subscribe(local_only, channels=[ChangeChannel.LOCAL])

    delivered = await bus.publish_app_change(source="tab-1")

    assert delivered == 0
    assert local_only.events == []


@pytest.mark.asyncio
async def test_handlers_run_in_subscription_order(bus) -> None:
    order: list[str] = []

    async def first(event: ChangeEvent) -> None:
        order.append("first")

    async def second(event: ChangeEvent) -> None:
        order.append("second")

    bus.subscribe(first)
    bus.subscribe(second)
    await bus.publish_app_change()

    assert order == ["first", "second"]


@pytest.mark.asyncio
async def test_disposed_subscription_receives_nothing(bus) -> None:
    """No event reaches a handler after dispose."""
    recorder = Recorder()
    subscription = bus.subscribe(recorder)

    subscription.dispose()
    subscription.dispose()
    await bus.publish_app_change()

    assert recorder.events == []
    assert subscription.active is False
    assert bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_dispose_during_publish(bus) -> None:
    """A handler disposed by an earlier handler is skipped."""
    late = Recorder()
    late_subscription = None

    async def disposer(event: ChangeEvent) -> None:
        late_subscription.dispose()

    bus.subscribe(disposer)
    late_subscription = bus.subscribe(late)

    delivered = await bus.publish_app_change()

    assert delivered == 1
    assert late.events == []


@pytest.mark.asyncio
async def test_failing_handler_does_not_affect_others(bus) -> None:
    """A handler exception is contained."""
    recorder = Recorder()

    async def broken(event: ChangeEvent) -> None:
        raise RuntimeError("render failed")

    bus.subscribe(broken)
    bus.subscribe(recorder)

    delivered = await bus.publish_app_change(source="tab-1")

    assert delivered == 1
    assert len(recorder.events) == 1


@pytest.mark.asyncio
async def test_publish_without_subscribers(bus) -> None:
    assert await bus.publish_app_change() == 0
