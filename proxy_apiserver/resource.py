"""Resource identities and the mapping between external and internal identity.

A `ResourceIdentity` names a resource type (group, version, kind and plural
resource name). Stamping only ever touches `apiVersion` and `kind`; metadata,
spec and status are left as they are.
"""

import copy
from dataclasses import dataclass

from mashumaro import DataClassDictMixin

from .objects import GenericObject, ObjectList

__all__ = [
    "ResourceIdentity",
    "IdentityMapper",
]


@dataclass(frozen=True)
class ResourceIdentity(DataClassDictMixin):
    """Identifier for a kind of resource served by an API group version."""

    group: str
    """The API group, empty for the core group."""

    version: str
    """The API version within the group."""

    kind: str
    """The kind of a single object."""

    resource: str
    """The plural resource name used in request paths."""

    @property
    def api_version(self) -> str:
        """Return the apiVersion string, e.g. `apps/v1` or `v1`."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    @property
    def list_kind(self) -> str:
        return f"{self.kind}List"

    def stamp_object(self, obj: GenericObject) -> GenericObject:
        """Set the apiVersion and kind of the object in place and return it."""
        obj["apiVersion"] = self.api_version
        obj["kind"] = self.kind
        return obj

    def stamp_list(self, object_list: ObjectList) -> ObjectList:
        """Set the identity of the list and of every item in it."""
        object_list.api_version = self.api_version
        object_list.kind = self.list_kind
        for item in object_list.items:
            self.stamp_object(item)
        return object_list

    def __str__(self) -> str:
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"


@dataclass(frozen=True)
class IdentityMapper:
    """Pairs the identity seen by callers with the identity stored in the backend."""

    external: ResourceIdentity
    internal: ResourceIdentity

    def to_internal(self, obj: GenericObject) -> GenericObject:
        """Return a copy of the object stamped with the internal identity.

        The caller's object is never modified.
        """
        return self.internal.stamp_object(copy.deepcopy(obj))

    def to_external(self, obj: GenericObject) -> GenericObject:
        """Stamp an object returned by the backing store with the external identity."""
        return self.external.stamp_object(obj)

    def to_external_list(self, object_list: ObjectList) -> ObjectList:
        """Stamp a list returned by the backing store with the external identity."""
        return self.external.stamp_list(object_list)
