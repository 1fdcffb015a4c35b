"""
The storage module provides the storage adapter that API servers dispatch
resource requests to.

- `ProxyStorage` serves a resource under its external identity and stores it
  under its internal identity through a `BackingClient`.
- `WatchRelay` streams backing watch events to callers with the identity
  remapped.
"""

from .proxy import (
    DefaultUpdatedObjectInfo,
    ProxyStorage,
    TransformFunc,
    UpdatedObjectInfo,
    ValidateObjectFunc,
    ValidateObjectUpdateFunc,
)
from .watch import EventSink, RelayState, WatchRelay

__all__ = [
    "ProxyStorage",
    "UpdatedObjectInfo",
    "DefaultUpdatedObjectInfo",
    "ValidateObjectFunc",
    "ValidateObjectUpdateFunc",
    "TransformFunc",
    "WatchRelay",
    "RelayState",
    "EventSink",
]
