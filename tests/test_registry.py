"""Tests for the storage registry."""

from pathlib import Path

import pytest

from proxy_apiserver.client import InMemoryDynamicClient
from proxy_apiserver.config import ProxyConfig, read_config
from proxy_apiserver.exceptions import ConfigError, InvalidRequestError
from proxy_apiserver.objects import get_name
from proxy_apiserver.options import GetOptions
from proxy_apiserver.registry import StorageRegistry
from proxy_apiserver.request import namespace_context
from proxy_apiserver.resource import ResourceIdentity

TESTDATA_DIR = Path("tests/testdata")

CONFIGMAPS = ResourceIdentity(
    group="", version="v1", kind="ConfigMap", resource="configmaps"
)


@pytest.fixture(name="dynamic_client")
def dynamic_client_fixture() -> InMemoryDynamicClient:
    return InMemoryDynamicClient()


@pytest.fixture(name="registry")
async def registry_fixture(dynamic_client: InMemoryDynamicClient) -> StorageRegistry:
    config = await read_config(TESTDATA_DIR / "config.yaml")
    return StorageRegistry.from_config(config, dynamic_client)


async def test_group_versions(registry: StorageRegistry) -> None:
    assert registry.group_versions() == [
        "apps.maisem.dev/v1",
        "settings.example.com/v1alpha1",
    ]
    assert list(registry.resources("settings.example.com/v1alpha1")) == ["settings"]
    assert registry.resources("example.com/v1") == {}
    assert [storage.resource for storage in registry] == ["deployments", "settings"]


@pytest.mark.parametrize(
    ("name", "resource"),
    [
        ("deployments", "deployments"),
        ("deployment", "deployments"),
        ("Deployment", "deployments"),
        ("mdep", "deployments"),
        ("deployments.apps.maisem.dev", "deployments"),
        ("settings", "settings"),
        ("setting", "settings"),
        ("settings.settings.example.com", "settings"),
    ],
)
async def test_lookup(registry: StorageRegistry, name: str, resource: str) -> None:
    assert registry.lookup(name).resource == resource


async def test_lookup_unknown(registry: StorageRegistry) -> None:
    with pytest.raises(InvalidRequestError, match='resource type "widgets"'):
        registry.lookup("widgets")


async def test_category(registry: StorageRegistry) -> None:
    assert [storage.resource for storage in registry.category("all")] == [
        "deployments",
        "settings",
    ]
    assert registry.category("other") == []


async def test_duplicate_resource(dynamic_client: InMemoryDynamicClient) -> None:
    config = ProxyConfig()
    config.resources.append(config.resources[0])
    with pytest.raises(ConfigError, match="configured more than once"):
        StorageRegistry.from_config(config, dynamic_client)


async def test_storage_uses_internal_resource(
    registry: StorageRegistry, dynamic_client: InMemoryDynamicClient
) -> None:
    """Test objects created through an exposed resource land in its backing one."""
    storage = registry.lookup("settings")
    with namespace_context("default"):
        created = await storage.create(
            {
                "apiVersion": "settings.example.com/v1alpha1",
                "kind": "Setting",
                "metadata": {"name": "feature-flags"},
                "data": {"dark-mode": "true"},
            }
        )
    assert created["apiVersion"] == "settings.example.com/v1alpha1"
    assert created["kind"] == "Setting"

    stored = await dynamic_client.resource(CONFIGMAPS).with_namespace("default").get(
        get_name(created), GetOptions()
    )
    assert stored["apiVersion"] == "v1"
    assert stored["kind"] == "ConfigMap"
    assert stored["data"] == {"dark-mode": "true"}
