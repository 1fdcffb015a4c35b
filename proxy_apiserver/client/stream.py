"""Watch streams produced by backing clients."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from proxy_apiserver.objects import WatchEvent

__all__ = [
    "WatchStream",
    "QueueWatchStream",
]

_LOGGER = logging.getLogger(__name__)


class WatchStream(ABC):
    """An ordered stream of watch events that can be stopped by the reader.

    Iteration ends when the producer closes the stream or after `stop()`.
    """

    def __aiter__(self) -> "WatchStream":
        return self

    @abstractmethod
    async def __anext__(self) -> WatchEvent:
        """Return the next event, raising StopAsyncIteration once closed."""

    @abstractmethod
    def stop(self) -> None:
        """Stop producing events. Safe to call more than once."""


class _Closed:
    """Marker placed on the queue when the stream is closed."""


_CLOSED = _Closed()


class QueueWatchStream(WatchStream):
    """A watch stream fed by a producer through an unbounded queue.

    Events sent before `close()` are still delivered; events sent after it are
    discarded.
    """

    def __init__(self, on_close: Callable[[], None] | None = None) -> None:
        """Initialize QueueWatchStream.

        Args:
            on_close: Called once when the stream is closed or stopped, used by
                producers to unregister the stream.
        """
        self._queue: asyncio.Queue[WatchEvent | _Closed] = asyncio.Queue()
        self._closed = False
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: WatchEvent) -> None:
        """Publish an event to the reader."""
        if self._closed:
            _LOGGER.debug("Discarding %s event sent to closed stream", event.type)
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Close the stream; the reader sees the end after buffered events."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            self._on_close()

    def stop(self) -> None:
        self.close()

    async def __anext__(self) -> WatchEvent:
        item = await self._queue.get()
        if isinstance(item, _Closed):
            # Leave the marker for any later reader.
            self._queue.put_nowait(item)
            raise StopAsyncIteration
        return item
