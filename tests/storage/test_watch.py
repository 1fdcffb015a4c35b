"""Tests for relaying watch events."""

import asyncio
from typing import Any

import pytest

from proxy_apiserver.client import QueueWatchStream, WatchStream
from proxy_apiserver.config import BufferPolicy, WatchConfig
from proxy_apiserver.exceptions import SlowConsumerError
from proxy_apiserver.objects import EventType, WatchEvent, status_object
from proxy_apiserver.resource import IdentityMapper, ResourceIdentity
from proxy_apiserver.storage import EventSink, RelayState, WatchRelay

EXTERNAL = ResourceIdentity(
    group="apps.maisem.dev", version="v1", kind="Deployment", resource="deployments"
)
INTERNAL = ResourceIdentity(
    group="apps", version="v1", kind="Deployment", resource="deployments"
)
MAPPER = IdentityMapper(external=EXTERNAL, internal=INTERNAL)


def event(event_type: EventType, name: str) -> WatchEvent:
    return WatchEvent(
        event_type,
        {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name},
            "spec": {"replicas": 1},
        },
    )


def names(events: list[WatchEvent]) -> list[str]:
    return [event.object["metadata"]["name"] for event in events]


async def collect(relay: WatchRelay) -> list[WatchEvent]:
    return [event async for event in relay]


async def wait_for_buffered(relay: WatchRelay, count: int) -> None:
    async with asyncio.timeout(1):
        while len(relay.sink) < count:
            await asyncio.sleep(0)


class FailingStream(WatchStream):
    """Produces the given events then fails like a dropped connection."""

    def __init__(self, events: list[WatchEvent]) -> None:
        self.events = list(events)
        self.stopped = False

    async def __anext__(self) -> WatchEvent:
        if self.events:
            return self.events.pop(0)
        raise ConnectionResetError("connection reset by peer")

    def stop(self) -> None:
        self.stopped = True


async def test_relay_remaps_in_order() -> None:
    """Test events are remapped and delivered in the order received."""
    source = QueueWatchStream()
    relay = WatchRelay(source, MAPPER.to_external)
    error: dict[str, Any] = status_object(500, "InternalError", "etcd unavailable")

    source.send(event(EventType.ADDED, "web"))
    source.send(event(EventType.MODIFIED, "web"))
    source.send(WatchEvent(EventType.ERROR, dict(error)))
    source.send(event(EventType.DELETED, "web"))
    source.close()

    events = await asyncio.wait_for(collect(relay), timeout=1)

    assert [event.type for event in events] == [
        EventType.ADDED,
        EventType.MODIFIED,
        EventType.ERROR,
        EventType.DELETED,
    ]
    for index in (0, 1, 3):
        assert events[index].object["apiVersion"] == "apps.maisem.dev/v1"
        assert events[index].object["kind"] == "Deployment"
        assert events[index].object["spec"] == {"replicas": 1}
    assert events[2].object == error

    await asyncio.wait_for(relay.wait_stopped(), timeout=1)
    assert relay.state == RelayState.STOPPED


async def test_stop_twice() -> None:
    """Test stop is idempotent and stops the backing stream."""
    source = QueueWatchStream()
    relay = WatchRelay(source, MAPPER.to_external)
    assert relay.state == RelayState.RUNNING

    relay.stop()
    relay.stop()

    assert relay.state == RelayState.STOPPED
    assert source.closed
    assert await asyncio.wait_for(collect(relay), timeout=1) == []
    await asyncio.wait_for(relay.wait_stopped(), timeout=1)


async def test_stop_after_source_ends() -> None:
    source = QueueWatchStream()
    relay = WatchRelay(source, MAPPER.to_external)
    source.close()

    await asyncio.wait_for(relay.wait_stopped(), timeout=1)
    assert relay.state == RelayState.STOPPED

    relay.stop()
    assert relay.state == RelayState.STOPPED


async def test_stop_wakes_reader() -> None:
    """Test a reader waiting for events sees the end of the watch on stop."""
    source = QueueWatchStream()
    relay = WatchRelay(source, MAPPER.to_external)
    reader = asyncio.create_task(collect(relay))
    await asyncio.sleep(0)

    relay.stop()

    assert await asyncio.wait_for(reader, timeout=1) == []


async def test_buffered_events_readable_after_stop() -> None:
    source = QueueWatchStream()
    relay = WatchRelay(source, MAPPER.to_external)
    source.send(event(EventType.ADDED, "web"))
    await wait_for_buffered(relay, 1)

    relay.stop()

    events = await asyncio.wait_for(collect(relay), timeout=1)
    assert names(events) == ["web"]
    assert events[0].object["apiVersion"] == "apps.maisem.dev/v1"


async def test_context_manager_stops() -> None:
    source = QueueWatchStream()
    async with WatchRelay(source, MAPPER.to_external) as relay:
        assert relay.state == RelayState.RUNNING
    assert relay.state == RelayState.STOPPED
    assert source.closed


async def test_drop_oldest() -> None:
    """Test a slow consumer loses the oldest events under the drop policy."""
    source = QueueWatchStream()
    relay = WatchRelay(
        source,
        MAPPER.to_external,
        WatchConfig(buffer_policy=BufferPolicy.DROP_OLDEST, max_size=2),
    )
    for name in ("a", "b", "c", "d"):
        source.send(event(EventType.ADDED, name))
    source.close()
    await asyncio.wait_for(relay.wait_stopped(), timeout=1)

    events = await asyncio.wait_for(collect(relay), timeout=1)
    assert names(events) == ["c", "d"]
    assert relay.sink.dropped == 2


async def test_backpressure_ends_watch() -> None:
    """Test a consumer that stops reading ends the watch under backpressure."""
    source = QueueWatchStream()
    relay = WatchRelay(
        source,
        MAPPER.to_external,
        WatchConfig(
            buffer_policy=BufferPolicy.BACKPRESSURE, max_size=1, publish_timeout=0.05
        ),
    )
    for name in ("a", "b", "c"):
        source.send(event(EventType.ADDED, name))

    await asyncio.wait_for(relay.wait_stopped(), timeout=1)

    assert relay.state == RelayState.STOPPED
    assert source.closed
    events = await asyncio.wait_for(collect(relay), timeout=1)
    assert [event.type for event in events] == [EventType.ADDED, EventType.ERROR]
    assert names(events[:1]) == ["a"]
    assert events[1].object["kind"] == "Status"
    assert events[1].object["code"] == 504
    assert events[1].object["reason"] == "Timeout"


async def test_backpressure_keeps_all_events() -> None:
    """Test a consumer that keeps reading receives every event."""
    source = QueueWatchStream()
    relay = WatchRelay(
        source,
        MAPPER.to_external,
        WatchConfig(buffer_policy=BufferPolicy.BACKPRESSURE, max_size=1),
    )
    for name in ("a", "b", "c", "d", "e"):
        source.send(event(EventType.ADDED, name))
    source.close()

    events = await asyncio.wait_for(collect(relay), timeout=1)
    assert names(events) == ["a", "b", "c", "d", "e"]


async def test_backing_failure() -> None:
    """Test a failing backing stream ends the watch with an error event."""
    source = FailingStream([event(EventType.ADDED, "web")])
    relay = WatchRelay(source, MAPPER.to_external)

    events = await asyncio.wait_for(collect(relay), timeout=1)

    assert [event.type for event in events] == [EventType.ADDED, EventType.ERROR]
    assert events[0].object["apiVersion"] == "apps.maisem.dev/v1"
    assert events[1].object["kind"] == "Status"
    assert events[1].object["code"] == 500
    assert "connection reset" in events[1].object["message"]
    assert source.stopped
    assert relay.state == RelayState.STOPPED


async def test_sink_put_after_close() -> None:
    sink = EventSink(WatchConfig())
    assert await sink.put(event(EventType.ADDED, "a"))
    sink.close()
    assert not await sink.put(event(EventType.ADDED, "b"))
    assert sink.closed
    first = await sink.get()
    assert first is not None
    assert first.object["metadata"]["name"] == "a"
    assert await sink.get() is None


async def test_sink_backpressure_timeout() -> None:
    sink = EventSink(
        WatchConfig(
            buffer_policy=BufferPolicy.BACKPRESSURE, max_size=1, publish_timeout=0.01
        )
    )
    await sink.put(event(EventType.ADDED, "a"))
    with pytest.raises(SlowConsumerError):
        await sink.put(event(EventType.ADDED, "b"))
    assert len(sink) == 1
