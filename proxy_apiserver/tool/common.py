"""Shared flags and setup for proxy-apiserver commands."""

import logging
import pathlib
from argparse import ArgumentParser
from typing import Any

import aiofiles
import yaml

from proxy_apiserver.client import InMemoryDynamicClient
from proxy_apiserver.config import ProxyConfig, read_config
from proxy_apiserver.exceptions import ConfigError, InvalidRequestError
from proxy_apiserver.objects import GenericObject
from proxy_apiserver.registry import StorageRegistry
from proxy_apiserver.resource import ResourceIdentity
from proxy_apiserver.storage import ProxyStorage

_LOGGER = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


def add_namespace_flags(args: ArgumentParser, all_namespaces: bool = True) -> None:
    """Add flags selecting the namespace of the request."""
    args.add_argument(
        "--namespace",
        "-n",
        default=DEFAULT_NAMESPACE,
        help="Namespace of the request",
    )
    if all_namespaces:
        args.add_argument(
            "--all-namespaces",
            "-A",
            action="store_true",
            help="Span all namespaces",
        )


def resolve_storage(registry: StorageRegistry, resource: str) -> list[ProxyStorage]:
    """Return the storage for a resource name, or every resource in a category."""
    try:
        return [registry.lookup(resource)]
    except InvalidRequestError:
        if storages := registry.category(resource):
            return storages
        raise


def request_namespace(
    storage: ProxyStorage, namespace: str | None, all_namespaces: bool = False
) -> str | None:
    """Return the namespace to run a request for the storage in."""
    if not storage.namespace_scoped or all_namespaces:
        return None
    return namespace


async def read_documents(path: pathlib.Path) -> list[GenericObject]:
    """Return the non-empty YAML documents in the file."""
    try:
        async with aiofiles.open(str(path)) as doc_file:
            content = await doc_file.read()
    except (OSError, UnicodeDecodeError) as err:
        raise InvalidRequestError(f"Unable to read {path}: {err}") from err
    try:
        docs = [doc for doc in yaml.safe_load_all(content) if doc]
    except yaml.YAMLError as err:
        raise InvalidRequestError(f"Unable to parse {path}: {err}") from err
    for doc in docs:
        if not isinstance(doc, dict):
            raise InvalidRequestError(f"Unexpected document in {path}: {doc}")
    return docs


def _find_identity(
    identities: list[ResourceIdentity], doc: dict[str, Any]
) -> ResourceIdentity | None:
    for identity in identities:
        if (
            doc.get("apiVersion") == identity.api_version
            and doc.get("kind") == identity.kind
        ):
            return identity
    return None


async def build_registry(
    config: pathlib.Path | None,
    objects: list[pathlib.Path] | None,
    **kwargs: Any,  # pylint: disable=unused-argument
) -> StorageRegistry:
    """Load the configuration and seed an in-memory backing store.

    Seed objects are in their stored (internal) form.
    """
    proxy_config = await read_config(config) if config else ProxyConfig()
    client = InMemoryDynamicClient()
    internal_identities = [resource.internal for resource in proxy_config.resources]
    for path in objects or []:
        for doc in await read_documents(path):
            if (identity := _find_identity(internal_identities, doc)) is None:
                _LOGGER.warning(
                    "Skipping %s/%s from %s: not a configured resource",
                    doc.get("apiVersion"),
                    doc.get("kind"),
                    path,
                )
                continue
            client.add_object(identity, doc)
    if not proxy_config.resources:
        raise ConfigError("No resources configured")
    return StorageRegistry.from_config(proxy_config, client)
