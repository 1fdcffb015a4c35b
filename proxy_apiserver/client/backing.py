"""Interfaces for the generic object store client the storage adapter delegates to."""

from abc import ABC, abstractmethod

from proxy_apiserver.objects import GenericObject, ObjectList
from proxy_apiserver.options import (
    CreateOptions,
    DeleteOptions,
    GetOptions,
    ListOptions,
    UpdateOptions,
)
from proxy_apiserver.resource import ResourceIdentity

from .stream import WatchStream

__all__ = [
    "BackingClient",
    "DynamicClient",
]


class BackingClient(ABC):
    """Schema-agnostic client for a single resource type.

    A client obtained from `DynamicClient.resource` spans all namespaces;
    `with_namespace` returns a handle scoped to a single namespace.

    Failures are reported by raising: `NotFoundError` when the object does not
    exist, other `ProxyException`s for conditions the store detects itself
    (conflicts, duplicate names), and any other exception for transport or
    storage failures.
    """

    @abstractmethod
    async def get(self, name: str, options: GetOptions) -> GenericObject:
        """Return the object with the given name."""

    @abstractmethod
    async def list(self, options: ListOptions) -> ObjectList:
        """Return the objects matching the options, in store order."""

    @abstractmethod
    async def create(self, obj: GenericObject, options: CreateOptions) -> GenericObject:
        """Persist a new object and return it as stored."""

    @abstractmethod
    async def update(self, obj: GenericObject, options: UpdateOptions) -> GenericObject:
        """Replace an existing object and return it as stored."""

    @abstractmethod
    async def delete(self, name: str, options: DeleteOptions) -> None:
        """Delete the object with the given name."""

    @abstractmethod
    async def watch(self, options: ListOptions) -> WatchStream:
        """Open a stream of change events for objects matching the options."""

    @abstractmethod
    def with_namespace(self, namespace: str) -> "BackingClient":
        """Return a client scoped to the namespace."""


class DynamicClient(ABC):
    """Factory for clients of arbitrary resource types."""

    @abstractmethod
    def resource(self, identity: ResourceIdentity) -> BackingClient:
        """Return a client for the resource type."""
