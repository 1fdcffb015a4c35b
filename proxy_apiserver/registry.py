"""Registry of the storage installed for each exposed group version and resource."""

import logging
from collections.abc import Iterator

from .client import DynamicClient
from .config import ProxyConfig
from .exceptions import ConfigError, InvalidRequestError
from .storage import ProxyStorage

__all__ = [
    "StorageRegistry",
]

_LOGGER = logging.getLogger(__name__)


class StorageRegistry:
    """Holds a ProxyStorage per exposed group version and plural resource name."""

    def __init__(self) -> None:
        """Initialize StorageRegistry."""
        self._storage: dict[str, dict[str, ProxyStorage]] = {}

    @classmethod
    def from_config(
        cls, config: ProxyConfig, dynamic_client: DynamicClient
    ) -> "StorageRegistry":
        """Create storage for every configured resource."""
        registry = cls()
        for resource in config.resources:
            registry.add(
                ProxyStorage.from_dynamic_client(
                    resource.external,
                    resource.internal,
                    resource.namespaced,
                    dynamic_client,
                    short_names=resource.short_names,
                    categories=resource.categories,
                    watch_config=config.watch,
                )
            )
        return registry

    def add(self, storage: ProxyStorage) -> None:
        """Install storage under its external group version and resource."""
        external = storage.mapper.external
        resources = self._storage.setdefault(external.api_version, {})
        if external.resource in resources:
            raise ConfigError(f"Resource {external} is configured more than once")
        _LOGGER.debug(
            "Installing %s/%s backed by %s",
            external.api_version,
            external.resource,
            storage.mapper.internal,
        )
        resources[external.resource] = storage

    def group_versions(self) -> list[str]:
        """Return the group versions that have at least one resource."""
        return [gv for gv, resources in self._storage.items() if resources]

    def resources(self, group_version: str) -> dict[str, ProxyStorage]:
        """Return the storage installed for a group version keyed by resource."""
        return dict(self._storage.get(group_version, {}))

    def __iter__(self) -> Iterator[ProxyStorage]:
        for resources in self._storage.values():
            yield from resources.values()

    def lookup(self, name: str) -> ProxyStorage:
        """Find storage by plural name, `resource.group`, kind or short name."""
        key = name.lower()
        for storage in self:
            external = storage.mapper.external
            candidates = {
                external.resource,
                str(external),
                external.kind.lower(),
                *(short_name.lower() for short_name in storage.short_names),
            }
            if key in candidates:
                return storage
        raise InvalidRequestError(f'the server doesn\'t have a resource type "{name}"')

    def category(self, category: str) -> list[ProxyStorage]:
        """Return the storage of all resources in the category."""
        return [storage for storage in self if category in storage.categories]
