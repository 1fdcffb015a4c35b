"""Storage that serves a resource under one identity while storing it under another.

`ProxyStorage` implements the storage operations an API server dispatches to
(get, list, create, update, delete, delete collection and watch). Objects
received from callers are copied and stamped with the internal identity before
they are sent to the backing client, and everything returned by the backing
client is stamped with the external identity before it is handed back.

Validation callbacks and preconditions are always evaluated before any
mutating call to the backing client.
"""

import contextlib
import copy
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Generator, Iterable
from typing import Any

from proxy_apiserver.client import BackingClient, DynamicClient
from proxy_apiserver.config import WatchConfig
from proxy_apiserver.exceptions import (
    BackingStoreError,
    InvalidRequestError,
    NotFoundError,
    PartialDeleteError,
    PreconditionFailedError,
    ProxyException,
)
from proxy_apiserver.objects import (
    GenericObject,
    ObjectList,
    get_name,
    get_namespace,
    get_resource_version,
    get_uid,
)
from proxy_apiserver.options import (
    CreateOptions,
    DeleteOptions,
    GetOptions,
    ListOptions,
    Preconditions,
    UpdateOptions,
    to_backing_list_options,
)
from proxy_apiserver.request import namespace_context, namespace_from
from proxy_apiserver.resource import IdentityMapper, ResourceIdentity

from .watch import WatchRelay

__all__ = [
    "ValidateObjectFunc",
    "ValidateObjectUpdateFunc",
    "TransformFunc",
    "UpdatedObjectInfo",
    "DefaultUpdatedObjectInfo",
    "ProxyStorage",
]

_LOGGER = logging.getLogger(__name__)


ValidateObjectFunc = Callable[[GenericObject], Awaitable[None] | None]
"""Validates an object, raising (typically ValidationError) to reject it."""

ValidateObjectUpdateFunc = Callable[
    [GenericObject, GenericObject], Awaitable[None] | None
]
"""Validates an update given the new and the old object."""

TransformFunc = Callable[
    [GenericObject, GenericObject], Awaitable[GenericObject] | GenericObject
]
"""Transforms the new object given the old one."""


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _check_name(obj: GenericObject, name: str) -> None:
    """Default the object name to the requested one, rejecting a different name."""
    if not (obj_name := get_name(obj)):
        obj["metadata"] = {**(obj.get("metadata") or {}), "name": name}
    elif obj_name != name:
        raise InvalidRequestError(
            f"the name of the object ({obj_name}) does not match the name on the "
            f"URL ({name})"
        )


class UpdatedObjectInfo(ABC):
    """Produces the desired object of an update from the current one."""

    def preconditions(self) -> Preconditions | None:
        """Return the preconditions the stored object must satisfy, if any."""
        return None

    @abstractmethod
    async def updated_object(self, old: GenericObject) -> GenericObject:
        """Return the updated object given the current object."""


class DefaultUpdatedObjectInfo(UpdatedObjectInfo):
    """Update to a caller supplied object, optionally passed through transformers.

    If the supplied object carries a uid, the update is conditional on the
    stored object having the same uid.
    """

    def __init__(self, obj: GenericObject, *transformers: TransformFunc) -> None:
        """Initialize DefaultUpdatedObjectInfo."""
        self._obj = obj
        self._transformers = transformers

    def preconditions(self) -> Preconditions | None:
        if not (uid := get_uid(self._obj)):
            return None
        return Preconditions(uid=uid)

    async def updated_object(self, old: GenericObject) -> GenericObject:
        new = copy.deepcopy(self._obj)
        for transformer in self._transformers:
            new = await _call(transformer, new, old)
        return new


class ProxyStorage:
    """Storage for one resource, backed by a differently identified resource."""

    def __init__(
        self,
        mapper: IdentityMapper,
        client: BackingClient,
        namespace_scoped: bool,
        short_names: Iterable[str] = (),
        categories: Iterable[str] = (),
        watch_config: WatchConfig | None = None,
    ) -> None:
        """Initialize ProxyStorage.

        Args:
            mapper: External and internal identity of the resource.
            client: Backing client for the internal resource, spanning all
                namespaces.
            namespace_scoped: Whether objects live in a namespace.
            short_names: Short names advertised for the resource.
            categories: Categories (e.g. `all`) the resource belongs to.
            watch_config: Buffering of watch events for slow consumers.
        """
        self._mapper = mapper
        self._client = client
        self._namespace_scoped = namespace_scoped
        self._short_names = tuple(short_names)
        self._categories = tuple(categories)
        self._watch_config = watch_config or WatchConfig()

    @classmethod
    def from_dynamic_client(
        cls,
        external: ResourceIdentity,
        internal: ResourceIdentity,
        namespace_scoped: bool,
        dynamic_client: DynamicClient,
        short_names: Iterable[str] = (),
        categories: Iterable[str] = (),
        watch_config: WatchConfig | None = None,
    ) -> "ProxyStorage":
        """Create storage using the dynamic client for the internal resource."""
        return cls(
            IdentityMapper(external=external, internal=internal),
            dynamic_client.resource(internal),
            namespace_scoped,
            short_names,
            categories,
            watch_config,
        )

    @property
    def mapper(self) -> IdentityMapper:
        return self._mapper

    @property
    def resource(self) -> str:
        """The plural resource name callers use."""
        return self._mapper.external.resource

    @property
    def namespace_scoped(self) -> bool:
        return self._namespace_scoped

    @property
    def short_names(self) -> tuple[str, ...]:
        return self._short_names

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    def new(self) -> GenericObject:
        """Return an empty object with the external identity."""
        return self._mapper.external.stamp_object({})

    def new_list(self) -> ObjectList:
        """Return an empty list with the external identity."""
        return self._mapper.external.stamp_list(ObjectList())

    def _backing(self, named: bool) -> BackingClient:
        """Return the backing client for the namespace of the current request."""
        if not self._namespace_scoped:
            return self._client
        if namespace := namespace_from():
            return self._client.with_namespace(namespace)
        if named:
            raise InvalidRequestError(
                f"a namespace is required for {self._mapper.external}"
            )
        return self._client

    @contextlib.contextmanager
    def _backing_call(
        self, operation: str, name: str | None = None
    ) -> Generator[None, None, None]:
        """Pass typed errors through and add context to any other failure."""
        try:
            yield
        except ProxyException:
            raise
        except Exception as err:
            target = str(self._mapper.internal)
            if name:
                target = f"{target}/{name}"
            raise BackingStoreError(f"Failed to {operation} {target}: {err}") from err

    async def get(self, name: str, options: GetOptions | None = None) -> GenericObject:
        """Return the object with the given name.

        Raises:
            NotFoundError: If the object does not exist.
        """
        client = self._backing(named=True)
        _LOGGER.debug("Get %s %s (namespace=%s)", self.resource, name, namespace_from())
        with self._backing_call("get", name):
            obj = await client.get(name, options or GetOptions())
        return self._mapper.to_external(obj)

    async def list(self, options: ListOptions | None = None) -> ObjectList:
        """Return the objects matching the list options."""
        backing_options = to_backing_list_options(options)
        client = self._backing(named=False)
        with self._backing_call("list"):
            object_list = await client.list(backing_options)
        return self._mapper.to_external_list(object_list)

    async def create(
        self,
        obj: GenericObject,
        create_validation: ValidateObjectFunc | None = None,
        options: CreateOptions | None = None,
    ) -> GenericObject:
        """Validate and create the object, returning it as stored."""
        if create_validation is not None:
            await _call(create_validation, obj)
        internal = self._mapper.to_internal(obj)
        client = self._backing(named=True)
        with self._backing_call("create", get_name(internal)):
            created = await client.create(internal, options or CreateOptions())
        _LOGGER.debug("Created %s %s", self.resource, get_name(created))
        return self._mapper.to_external(created)

    async def update(
        self,
        name: str,
        obj_info: UpdatedObjectInfo,
        create_validation: ValidateObjectFunc | None = None,
        update_validation: ValidateObjectUpdateFunc | None = None,
        force_allow_create: bool = False,
        options: UpdateOptions | None = None,
    ) -> tuple[GenericObject, bool]:
        """Update the object, or create it if allowed and it does not exist.

        Returns the stored object and whether it was created.

        Raises:
            InvalidRequestError: If the updated object names a different object.
            NotFoundError: If the object does not exist and creation is not allowed.
            PreconditionFailedError: If the uid or resourceVersion precondition
                of obj_info does not match.
        """
        try:
            current = await self.get(name)
        except NotFoundError:
            if not force_allow_create:
                raise
            _LOGGER.debug("Update of missing %s %s, creating", self.resource, name)
            new_obj = await obj_info.updated_object(self.new())
            _check_name(new_obj, name)
            create_options = None
            if options is not None:
                create_options = CreateOptions(
                    dry_run=options.dry_run, field_manager=options.field_manager
                )
            created = await self.create(new_obj, create_validation, create_options)
            return created, True

        updated = await obj_info.updated_object(current)
        _check_name(updated, name)
        if update_validation is not None:
            await _call(update_validation, updated, current)
        internal = self._mapper.to_internal(updated)

        if (preconditions := obj_info.preconditions()) is not None:
            if preconditions.uid is not None and preconditions.uid != get_uid(internal):
                raise PreconditionFailedError(
                    "uid", preconditions.uid, get_uid(internal)
                )
            if (
                preconditions.resource_version is not None
                and preconditions.resource_version != get_resource_version(internal)
            ):
                raise PreconditionFailedError(
                    "resourceVersion",
                    preconditions.resource_version,
                    get_resource_version(internal),
                )

        client = self._backing(named=True)
        with self._backing_call("update", name):
            returned = await client.update(internal, options or UpdateOptions())
        return self._mapper.to_external(returned), False

    async def delete(
        self,
        name: str,
        delete_validation: ValidateObjectFunc | None = None,
        options: DeleteOptions | None = None,
    ) -> tuple[GenericObject, bool]:
        """Delete the object, returning it as it was before deletion.

        Deletion is always immediate, so the second value is always True.
        """
        obj = await self.get(name)
        if delete_validation is not None:
            await _call(delete_validation, obj)
        internal = self._mapper.to_internal(obj)
        client = self._backing(named=True)
        with self._backing_call("delete", name):
            await client.delete(get_name(internal), options or DeleteOptions())
        return obj, True

    async def delete_collection(
        self,
        delete_validation: ValidateObjectFunc | None = None,
        options: DeleteOptions | None = None,
        list_options: ListOptions | None = None,
    ) -> ObjectList:
        """Delete every object matching the list options, one at a time.

        This is not atomic: on the first failure the remaining objects are not
        attempted and objects already deleted stay deleted.

        Raises:
            PartialDeleteError: With the objects deleted so far and the failure.
        """
        candidates = await self.list(list_options)
        deleted = self.new_list()
        for item in candidates.items:
            name = get_name(item)
            scope: contextlib.AbstractContextManager[None] = contextlib.nullcontext()
            if self._namespace_scoped:
                scope = namespace_context(get_namespace(item) or namespace_from())
            try:
                with scope:
                    obj, _ = await self.delete(name, delete_validation, options)
            except Exception as err:
                _LOGGER.error("Failed to delete %s %s: %s", self.resource, name, err)
                raise PartialDeleteError(deleted, err) from err
            deleted.items.append(obj)
        _LOGGER.info("Deleted %d %s", len(deleted.items), self.resource)
        return deleted

    async def watch(self, options: ListOptions | None = None) -> WatchRelay:
        """Open a watch whose events carry the external identity.

        The caller owns the returned relay and must stop it when done.
        """
        backing_options = to_backing_list_options(options)
        client = self._backing(named=False)
        with self._backing_call("watch"):
            stream = await client.watch(backing_options)
        return WatchRelay(
            stream,
            self._mapper.to_external,
            self._watch_config,
            name=f"watch-{self.resource}",
        )
