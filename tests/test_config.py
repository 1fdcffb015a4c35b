"""Tests for the configuration file."""

from pathlib import Path

import pytest

from proxy_apiserver.config import (
    BufferPolicy,
    ProxyConfig,
    ResourceConfig,
    WatchConfig,
    read_config,
)
from proxy_apiserver.exceptions import ConfigError
from proxy_apiserver.resource import ResourceIdentity

TESTDATA_DIR = Path("tests/testdata")


def test_default_config() -> None:
    """Test the default configuration exposes a single remapped Deployment."""
    config = ProxyConfig()
    assert len(config.resources) == 1
    resource = config.resources[0]
    assert resource.external.api_version == "apps.maisem.dev/v1"
    assert resource.internal.api_version == "apps/v1"
    assert resource.external.kind == resource.internal.kind == "Deployment"
    assert resource.namespaced
    assert resource.short_names == ["mdep"]
    assert resource.categories == ["all"]
    assert config.watch == WatchConfig()
    assert config.watch.buffer_policy == BufferPolicy.UNBOUNDED


async def test_read_config() -> None:
    config = await read_config(TESTDATA_DIR / "config.yaml")
    assert [resource.external.resource for resource in config.resources] == [
        "deployments",
        "settings",
    ]
    settings = config.resources[1]
    assert settings.external == ResourceIdentity(
        group="settings.example.com",
        version="v1alpha1",
        kind="Setting",
        resource="settings",
    )
    assert settings.internal.api_version == "v1"
    assert settings.short_names == []
    assert settings.categories == ["all"]
    assert config.watch.buffer_policy == BufferPolicy.DROP_OLDEST
    assert config.watch.max_size == 50
    assert config.watch.publish_timeout == 5.0


def test_parse_yaml_defaults() -> None:
    """Test omitted fields take their defaults."""
    config = ProxyConfig.parse_yaml(
        """
resources:
- namespaced: false
watch:
  bufferPolicy: backpressure
  publishTimeout: 0.5
"""
    )
    assert config.resources == [ResourceConfig(namespaced=False)]
    assert config.watch.buffer_policy == BufferPolicy.BACKPRESSURE
    assert config.watch.max_size == 100
    assert config.watch.publish_timeout == 0.5


def test_yaml_uses_aliases() -> None:
    content = ProxyConfig().yaml()
    assert "shortNames" in content
    assert "bufferPolicy: unbounded" in content
    assert ProxyConfig.parse_yaml(content) == ProxyConfig()


@pytest.mark.parametrize(
    "content",
    [
        "resources: [",
        "watch:\n  bufferPolicy: sometimes\n",
        "watch:\n  maxSize: 0\n",
        "watch:\n  publishTimeout: -1\n",
        "resources:\n- external:\n    group: example.com\n",
    ],
)
def test_invalid_config(content: str) -> None:
    with pytest.raises(ConfigError, match="Invalid configuration"):
        ProxyConfig.parse_yaml(content)


async def test_read_config_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Unable to read configuration"):
        await read_config(tmp_path / "missing.yaml")


async def test_read_config_empty(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("\n")
    with pytest.raises(ConfigError, match="is empty"):
        await read_config(config_file)


async def test_read_config_not_utf8(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_bytes(b"resources: \xff\xfe\n")
    with pytest.raises(ConfigError, match="Unable to read configuration"):
        await read_config(config_file)
