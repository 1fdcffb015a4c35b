"""Relay of backing store watch events to API callers.

A `WatchRelay` owns a background task that reads events from a backing
`WatchStream`, stamps the external identity onto the object of every event
except errors, and publishes the events in order to an `EventSink`. The
caller reads the sink by iterating the relay.

The relay is `Running` from construction until the backing stream ends or
`stop()` is called, after which it is `Stopped`. Events already in the sink
can still be read after the relay stops; iteration then ends.

All methods must be called from the event loop the relay was created on.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from enum import StrEnum
from types import TracebackType

from proxy_apiserver.client import WatchStream
from proxy_apiserver.config import BufferPolicy, WatchConfig
from proxy_apiserver.exceptions import SlowConsumerError, status_for_error
from proxy_apiserver.objects import EventType, GenericObject, WatchEvent

__all__ = [
    "RelayState",
    "EventSink",
    "WatchRelay",
]

_LOGGER = logging.getLogger(__name__)


class RelayState(StrEnum):
    """Lifecycle state of a WatchRelay."""

    RUNNING = "Running"
    STOPPED = "Stopped"


class EventSink:
    """Ordered buffer of events between the relay task and the consumer.

    The buffering behavior for a slow consumer follows the configured
    `BufferPolicy`. The sink never reorders events.
    """

    def __init__(self, config: WatchConfig) -> None:
        """Initialize EventSink."""
        self._config = config
        self._events: deque[WatchEvent] = deque()
        self._closed = False
        self._readable = asyncio.Event()
        self._writable = asyncio.Event()
        self._writable.set()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._events)

    def _full(self) -> bool:
        return len(self._events) >= self._config.max_size

    async def put(self, event: WatchEvent) -> bool:
        """Add an event, returning False if the sink is already closed.

        Raises:
            SlowConsumerError: Under the backpressure policy, if no space
                became available within the publish timeout.
        """
        if self._closed:
            return False
        match self._config.buffer_policy:
            case BufferPolicy.DROP_OLDEST:
                if self._full():
                    dropped = self._events.popleft()
                    self.dropped += 1
                    _LOGGER.warning(
                        "Watch consumer is behind, dropped oldest %s event "
                        "(%d dropped)",
                        dropped.type,
                        self.dropped,
                    )
            case BufferPolicy.BACKPRESSURE:
                try:
                    async with asyncio.timeout(self._config.publish_timeout):
                        while self._full() and not self._closed:
                            self._writable.clear()
                            await self._writable.wait()
                except TimeoutError as err:
                    raise SlowConsumerError(
                        "Watch consumer did not read within "
                        f"{self._config.publish_timeout}s"
                    ) from err
                if self._closed:
                    return False
        self._events.append(event)
        self._readable.set()
        return True

    def put_final(self, event: WatchEvent) -> None:
        """Add a last event regardless of the buffer bound and close the sink."""
        if self._closed:
            return
        self._events.append(event)
        self.close()

    async def get(self) -> WatchEvent | None:
        """Return the next event, or None once the sink is closed and drained."""
        while not self._events:
            if self._closed:
                return None
            self._readable.clear()
            await self._readable.wait()
        event = self._events.popleft()
        self._writable.set()
        return event

    def close(self) -> None:
        """Close the sink and wake up any waiting reader or writer."""
        self._closed = True
        self._readable.set()
        self._writable.set()


class WatchRelay:
    """Republishes backing watch events with the external identity."""

    def __init__(
        self,
        source: WatchStream,
        mapper: Callable[[GenericObject], GenericObject],
        config: WatchConfig | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize WatchRelay and start the relay task.

        Args:
            source: The backing stream; the relay owns it from now on.
            mapper: Stamps an object in place with the external identity.
            config: Buffering of events for the consumer.
            name: Name of the relay task, used for debugging.
        """
        self._source = source
        self._mapper = mapper
        self._sink = EventSink(config or WatchConfig())
        self._state = RelayState.RUNNING
        self._task = asyncio.create_task(self._run(), name=name or "watch-relay")

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def sink(self) -> EventSink:
        return self._sink

    async def _run(self) -> None:
        try:
            async for event in self._source:
                if event.type != EventType.ERROR:
                    self._mapper(event.object)
                if not await self._sink.put(event):
                    break
        except SlowConsumerError as err:
            _LOGGER.warning("Ending watch %s: %s", self._task.get_name(), err)
            self._sink.put_final(WatchEvent(EventType.ERROR, status_for_error(err)))
        except Exception as err:
            _LOGGER.error(
                "Backing watch %s failed: %s", self._task.get_name(), err, exc_info=True
            )
            self._sink.put_final(WatchEvent(EventType.ERROR, status_for_error(err)))
        finally:
            self._finish()

    def _finish(self) -> None:
        if self._state == RelayState.STOPPED:
            return
        _LOGGER.debug("Watch %s stopped", self._task.get_name())
        self._state = RelayState.STOPPED
        self._source.stop()
        self._sink.close()

    def stop(self) -> None:
        """Stop the relay and the backing stream. Safe to call more than once."""
        if self._state == RelayState.STOPPED:
            return
        self._finish()
        if not self._task.done():
            self._task.cancel()

    async def wait_stopped(self) -> None:
        """Wait for the relay task to exit."""
        await asyncio.wait([self._task])

    def __aiter__(self) -> "WatchRelay":
        return self

    async def __anext__(self) -> WatchEvent:
        if (event := await self._sink.get()) is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "WatchRelay":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
