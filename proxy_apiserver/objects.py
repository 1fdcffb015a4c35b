"""Representation of generic API objects, lists and watch events.

Objects are schema-agnostic documents: a `dict` holding `apiVersion`, `kind`
and a `metadata` sub-document, with anything else (e.g. `spec`, `status`)
carried through untouched.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

__all__ = [
    "GenericObject",
    "ListMeta",
    "ObjectList",
    "EventType",
    "WatchEvent",
    "get_name",
    "get_namespace",
    "get_uid",
    "get_resource_version",
    "get_labels",
    "status_object",
]


GenericObject = dict[str, Any]


def _metadata(obj: GenericObject) -> dict[str, Any]:
    return obj.get("metadata") or {}


def get_name(obj: GenericObject) -> str:
    """Return metadata.name or an empty string."""
    return _metadata(obj).get("name") or ""


def get_namespace(obj: GenericObject) -> str | None:
    """Return metadata.namespace if set."""
    return _metadata(obj).get("namespace") or None


def get_uid(obj: GenericObject) -> str:
    """Return metadata.uid or an empty string."""
    return _metadata(obj).get("uid") or ""


def get_resource_version(obj: GenericObject) -> str:
    """Return metadata.resourceVersion or an empty string."""
    return _metadata(obj).get("resourceVersion") or ""


def get_labels(obj: GenericObject) -> dict[str, str]:
    """Return metadata.labels."""
    return _metadata(obj).get("labels") or {}


@dataclass
class ListMeta(DataClassDictMixin):
    """Metadata of a list response."""

    resource_version: str | None = field(
        default=None, metadata=field_options(alias="resourceVersion")
    )
    """The resourceVersion of the store when the list was served."""

    continue_: str | None = field(
        default=None, metadata=field_options(alias="continue")
    )
    """Token for retrieving the next page, if any."""

    remaining_item_count: int | None = field(
        default=None, metadata=field_options(alias="remainingItemCount")
    )
    """Number of items left after this page, when known."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass
class ObjectList(DataClassDictMixin):
    """An ordered list of generic objects.

    Items keep the order the backing store returned them in.
    """

    api_version: str = field(default="", metadata=field_options(alias="apiVersion"))
    kind: str = ""
    metadata: ListMeta = field(default_factory=ListMeta)
    items: list[GenericObject] = field(default_factory=list)

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


class EventType(StrEnum):
    """Type of a watch event."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


@dataclass
class WatchEvent:
    """A single change notification from a watch.

    For `ERROR` events the object is a `Status` document, not a resource.
    """

    type: EventType
    object: GenericObject

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation of the event."""
        return {"type": str(self.type), "object": self.object}


def status_object(code: int, reason: str, message: str) -> GenericObject:
    """Return a failure Status document."""
    return {
        "apiVersion": "v1",
        "kind": "Status",
        "metadata": {},
        "status": "Failure",
        "message": message,
        "reason": reason,
        "code": code,
    }
