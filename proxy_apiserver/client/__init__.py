"""Clients for the object store that holds the internal resources.

The storage adapter only depends on the `BackingClient` and `DynamicClient`
interfaces. `InMemoryDynamicClient` is a complete in-process implementation
used by the command line tool and tests.
"""

from .backing import BackingClient, DynamicClient
from .in_memory import InMemoryClient, InMemoryDynamicClient
from .stream import QueueWatchStream, WatchStream

__all__ = [
    "BackingClient",
    "DynamicClient",
    "InMemoryClient",
    "InMemoryDynamicClient",
    "QueueWatchStream",
    "WatchStream",
]
