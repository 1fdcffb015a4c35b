"""Module for an in memory backing object store.

Objects are kept per resource type keyed by namespace and name. Every change
bumps a store wide resourceVersion counter and is recorded in a bounded
history used to resume watches.
"""

import base64
import binascii
import copy
import json
import logging
import random
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from proxy_apiserver.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)
from proxy_apiserver.objects import (
    EventType,
    GenericObject,
    ListMeta,
    ObjectList,
    WatchEvent,
    get_labels,
    get_name,
    get_namespace,
    get_resource_version,
    get_uid,
    status_object,
)
from proxy_apiserver.options import (
    CreateOptions,
    DeleteOptions,
    GetOptions,
    ListOptions,
    UpdateOptions,
)
from proxy_apiserver.resource import ResourceIdentity

from .backing import BackingClient, DynamicClient
from .selector import (
    FieldSelector,
    LabelSelector,
    parse_field_selector,
    parse_label_selector,
)
from .stream import QueueWatchStream, WatchStream

__all__ = [
    "InMemoryClient",
    "InMemoryDynamicClient",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 1000

# Characters used for generateName suffixes, without vowels or confusing digits.
NAME_SUFFIX_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
NAME_SUFFIX_LENGTH = 5

DRY_RUN_ALL = "All"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _is_dry_run(dry_run: list[str] | None) -> bool:
    return bool(dry_run) and DRY_RUN_ALL in dry_run  # type: ignore[operator]


def _encode_continue(resource_version: int, start: int) -> str:
    content = json.dumps({"rv": resource_version, "start": start})
    return base64.urlsafe_b64encode(content.encode()).decode()


def _decode_continue(token: str) -> int:
    try:
        content = json.loads(base64.urlsafe_b64decode(token.encode()))
        start = int(content["start"])
    except (binascii.Error, ValueError, KeyError, TypeError) as err:
        raise InvalidRequestError(f"Invalid continue token: {token}") from err
    if start < 0:
        raise InvalidRequestError(f"Invalid continue token: {token}")
    return start


@dataclass
class _Watcher:
    """A registered watch and the filter it was opened with."""

    namespace: str | None
    label_selector: LabelSelector
    field_selector: FieldSelector
    stream: QueueWatchStream

    def matches(self, obj: GenericObject) -> bool:
        if self.namespace and get_namespace(obj) != self.namespace:
            return False
        return self.label_selector.matches(
            get_labels(obj)
        ) and self.field_selector.matches(obj)


class _ResourceTable:
    """Objects, history and open watches for a single resource type."""

    def __init__(self, identity: ResourceIdentity, history_size: int) -> None:
        self.identity = identity
        self.objects: dict[tuple[str, str], GenericObject] = {}
        self.resource_version = 0
        self.history: deque[tuple[int, WatchEvent]] = deque(maxlen=history_size)
        self.watchers: list[_Watcher] = []

    def next_resource_version(self) -> str:
        self.resource_version += 1
        return str(self.resource_version)

    def record(self, event_type: EventType, obj: GenericObject) -> None:
        """Add a change to the history and notify matching watchers."""
        self.history.append(
            (self.resource_version, WatchEvent(event_type, copy.deepcopy(obj)))
        )
        for watcher in list(self.watchers):
            if watcher.matches(obj):
                watcher.stream.send(WatchEvent(event_type, copy.deepcopy(obj)))

    def insert(self, obj: GenericObject) -> GenericObject:
        """Store a new object, assigning server populated metadata."""
        metadata = obj.setdefault("metadata", {})
        namespace = metadata.get("namespace") or ""
        if not (name := metadata.get("name")):
            if not (generate_name := metadata.get("generateName")):
                raise InvalidRequestError(
                    "metadata.name or metadata.generateName is required"
                )
            name = generate_name + "".join(
                random.choices(NAME_SUFFIX_ALPHABET, k=NAME_SUFFIX_LENGTH)
            )
            metadata["name"] = name
        if (namespace, name) in self.objects:
            raise AlreadyExistsError(str(self.identity), name)
        metadata["uid"] = str(uuid.uuid4())
        metadata["creationTimestamp"] = _now()
        metadata["resourceVersion"] = self.next_resource_version()
        self.identity.stamp_object(obj)
        self.objects[(namespace, name)] = obj
        self.record(EventType.ADDED, obj)
        return obj

    def remove_watcher(self, watcher: _Watcher) -> None:
        if watcher in self.watchers:
            self.watchers.remove(watcher)


class InMemoryClient(BackingClient):
    """In-memory implementation of the BackingClient interface."""

    def __init__(self, table: _ResourceTable, namespace: str | None = None) -> None:
        """Initialize InMemoryClient."""
        self._table = table
        self._namespace = namespace

    @property
    def namespace(self) -> str | None:
        return self._namespace

    def with_namespace(self, namespace: str) -> "InMemoryClient":
        return InMemoryClient(self._table, namespace)

    def _key(self, name: str) -> tuple[str, str]:
        return (self._namespace or "", name)

    def _not_found(self, name: str) -> NotFoundError:
        return NotFoundError(str(self._table.identity), name, self._namespace)

    def _in_scope(self, obj: GenericObject) -> bool:
        return not self._namespace or get_namespace(obj) == self._namespace

    async def get(self, name: str, options: GetOptions) -> GenericObject:
        """Return a copy of the stored object."""
        if (obj := self._table.objects.get(self._key(name))) is None:
            raise self._not_found(name)
        return copy.deepcopy(obj)

    async def list(self, options: ListOptions) -> ObjectList:
        """Return the objects in namespace and name order, one page at a time."""
        label_selector = parse_label_selector(options.label_selector)
        field_selector = parse_field_selector(options.field_selector)
        matching = [
            obj
            for _, obj in sorted(self._table.objects.items())
            if self._in_scope(obj)
            and label_selector.matches(get_labels(obj))
            and field_selector.matches(obj)
        ]
        start = _decode_continue(options.continue_) if options.continue_ else 0
        metadata = ListMeta(resource_version=str(self._table.resource_version))
        if options.limit:
            end = start + options.limit
            page = matching[start:end]
            if end < len(matching):
                metadata.continue_ = _encode_continue(self._table.resource_version, end)
                metadata.remaining_item_count = len(matching) - end
        else:
            page = matching[start:]
        return ObjectList(
            api_version=self._table.identity.api_version,
            kind=self._table.identity.list_kind,
            metadata=metadata,
            items=[copy.deepcopy(obj) for obj in page],
        )

    async def create(self, obj: GenericObject, options: CreateOptions) -> GenericObject:
        """Store a copy of the object and return it as stored."""
        obj = copy.deepcopy(obj)
        metadata = obj.setdefault("metadata", {})
        if self._namespace:
            namespace = metadata.get("namespace")
            if namespace and namespace != self._namespace:
                raise InvalidRequestError(
                    f"the namespace of the object ({namespace}) does not match "
                    f"the namespace on the request ({self._namespace})"
                )
            metadata["namespace"] = self._namespace
        if _is_dry_run(options.dry_run):
            _LOGGER.debug("Dry run create of %s", get_name(obj))
            return obj
        created = self._table.insert(obj)
        _LOGGER.debug(
            "Created %s %s (rv=%s)",
            self._table.identity,
            get_name(created),
            get_resource_version(created),
        )
        return copy.deepcopy(created)

    async def update(self, obj: GenericObject, options: UpdateOptions) -> GenericObject:
        """Replace the stored object, rejecting stale resourceVersions."""
        name = get_name(obj)
        key = self._key(name)
        if (existing := self._table.objects.get(key)) is None:
            raise self._not_found(name)
        if (rv := get_resource_version(obj)) and rv != get_resource_version(existing):
            raise ConflictError(
                f'Operation cannot be fulfilled on {self._table.identity} "{name}": '
                "the object has been modified; please apply your changes to the "
                "latest version and try again"
            )
        if (uid := get_uid(obj)) and uid != get_uid(existing):
            raise ConflictError(
                f'Operation cannot be fulfilled on {self._table.identity} "{name}": '
                f"uid mismatch ({uid} != {get_uid(existing)})"
            )
        updated = copy.deepcopy(obj)
        metadata = updated.setdefault("metadata", {})
        existing_metadata = existing["metadata"]
        for preserved in ("uid", "creationTimestamp", "namespace"):
            if preserved in existing_metadata:
                metadata[preserved] = existing_metadata[preserved]
        metadata["resourceVersion"] = existing_metadata["resourceVersion"]
        self._table.identity.stamp_object(updated)
        if updated == existing:
            _LOGGER.debug("Update of %s %s is a no-op", self._table.identity, name)
            return copy.deepcopy(existing)
        if _is_dry_run(options.dry_run):
            return updated
        metadata["resourceVersion"] = self._table.next_resource_version()
        self._table.objects[key] = updated
        self._table.record(EventType.MODIFIED, updated)
        return copy.deepcopy(updated)

    async def delete(self, name: str, options: DeleteOptions) -> None:
        """Remove the stored object, honoring delete preconditions."""
        key = self._key(name)
        if (existing := self._table.objects.get(key)) is None:
            raise self._not_found(name)
        if preconditions := options.preconditions:
            if preconditions.uid is not None and preconditions.uid != get_uid(existing):
                raise ConflictError(
                    f"Precondition failed: UID in precondition: {preconditions.uid}, "
                    f"UID in object meta: {get_uid(existing)}"
                )
            if (
                preconditions.resource_version is not None
                and preconditions.resource_version != get_resource_version(existing)
            ):
                raise ConflictError(
                    "Precondition failed: ResourceVersion in precondition: "
                    f"{preconditions.resource_version}, ResourceVersion in object "
                    f"meta: {get_resource_version(existing)}"
                )
        if _is_dry_run(options.dry_run):
            return
        del self._table.objects[key]
        existing["metadata"]["resourceVersion"] = self._table.next_resource_version()
        self._table.record(EventType.DELETED, existing)

    async def watch(self, options: ListOptions) -> WatchStream:
        """Open a watch on the objects in scope.

        Without a resourceVersion (or "0") the watch starts with an ADDED event
        for every current object. With a resourceVersion the retained history
        after it is replayed; if that history is no longer retained the stream
        carries a single 410 Expired error and ends.
        """
        stream = QueueWatchStream(on_close=lambda: self._table.remove_watcher(watcher))
        watcher = _Watcher(
            namespace=self._namespace,
            label_selector=parse_label_selector(options.label_selector),
            field_selector=parse_field_selector(options.field_selector),
            stream=stream,
        )

        if not options.resource_version or options.resource_version == "0":
            for _, obj in sorted(self._table.objects.items()):
                if watcher.matches(obj):
                    stream.send(WatchEvent(EventType.ADDED, copy.deepcopy(obj)))
        else:
            try:
                since = int(options.resource_version)
            except ValueError as err:
                raise InvalidRequestError(
                    f"Invalid resourceVersion: {options.resource_version}"
                ) from err
            history = self._table.history
            oldest = history[0][0] if history else self._table.resource_version + 1
            if since < oldest - 1:
                _LOGGER.debug(
                    "Watch of %s from %s is too old (oldest %s)",
                    self._table.identity,
                    since,
                    oldest,
                )
                stream.send(
                    WatchEvent(
                        EventType.ERROR,
                        status_object(
                            410,
                            "Expired",
                            f"too old resource version: {since} ({oldest - 1})",
                        ),
                    )
                )
                stream.close()
                return stream
            for event_rv, event in history:
                if event_rv > since and watcher.matches(event.object):
                    stream.send(WatchEvent(event.type, copy.deepcopy(event.object)))

        self._table.watchers.append(watcher)
        return stream


class InMemoryDynamicClient(DynamicClient):
    """Holds an in memory table per resource type."""

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        """Initialize InMemoryDynamicClient.

        Args:
            history_size: Number of changes per resource type retained for
                resuming watches.
        """
        self._history_size = history_size
        self._tables: dict[tuple[str, str, str], _ResourceTable] = {}

    def _table(self, identity: ResourceIdentity) -> _ResourceTable:
        key = (identity.group, identity.version, identity.resource)
        if (table := self._tables.get(key)) is None:
            table = _ResourceTable(identity, self._history_size)
            self._tables[key] = table
        return table

    def resource(self, identity: ResourceIdentity) -> InMemoryClient:
        return InMemoryClient(self._table(identity))

    def add_object(
        self, identity: ResourceIdentity, obj: dict[str, Any]
    ) -> GenericObject:
        """Seed the store with an object outside of any request."""
        return copy.deepcopy(self._table(identity).insert(copy.deepcopy(obj)))
