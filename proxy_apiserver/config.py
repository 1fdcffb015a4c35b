"""Configuration objects for proxy-apiserver.

A configuration file lists the resources to expose and how each one maps to
the resource it is stored as, e.g.:

    resources:
    - external: {group: apps.maisem.dev, version: v1, kind: Deployment, resource: deployments}
      internal: {group: apps, version: v1, kind: Deployment, resource: deployments}
      namespaced: true
      shortNames: [mdep]
      categories: [all]
    watch:
      bufferPolicy: unbounded
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import aiofiles
import yaml
from mashumaro import DataClassDictMixin, field_options
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import MissingField

from .exceptions import ConfigError
from .resource import ResourceIdentity

__all__ = [
    "BufferPolicy",
    "WatchConfig",
    "ResourceConfig",
    "ProxyConfig",
    "read_config",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100
DEFAULT_PUBLISH_TIMEOUT = 5.0


class BufferPolicy(StrEnum):
    """How a watch buffers events for a consumer that reads slower than they arrive."""

    UNBOUNDED = "unbounded"
    """Keep every event; memory grows while the consumer lags."""

    DROP_OLDEST = "drop-oldest"
    """Keep at most max_size events, discarding the oldest."""

    BACKPRESSURE = "backpressure"
    """Keep at most max_size events; end the watch if no room frees up in time."""


@dataclass
class WatchConfig(DataClassDictMixin):
    """Configuration for relaying watch events to callers."""

    buffer_policy: BufferPolicy = field(
        default=BufferPolicy.UNBOUNDED, metadata=field_options(alias="bufferPolicy")
    )
    max_size: int = field(
        default=DEFAULT_MAX_SIZE, metadata=field_options(alias="maxSize")
    )
    """Buffer bound for the bounded policies."""

    publish_timeout: float = field(
        default=DEFAULT_PUBLISH_TIMEOUT, metadata=field_options(alias="publishTimeout")
    )
    """Seconds to wait for buffer space under the backpressure policy."""

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError(f"maxSize must be positive, got {self.max_size}")
        if self.publish_timeout <= 0:
            raise ValueError(
                f"publishTimeout must be positive, got {self.publish_timeout}"
            )

    class Config(BaseConfig):
        serialize_by_alias = True


def _default_external() -> ResourceIdentity:
    return ResourceIdentity(
        group="apps.maisem.dev", version="v1", kind="Deployment", resource="deployments"
    )


def _default_internal() -> ResourceIdentity:
    return ResourceIdentity(
        group="apps", version="v1", kind="Deployment", resource="deployments"
    )


@dataclass
class ResourceConfig(DataClassDictMixin):
    """A resource exposed under one identity and stored under another."""

    external: ResourceIdentity = field(default_factory=_default_external)
    """The identity callers see."""

    internal: ResourceIdentity = field(default_factory=_default_internal)
    """The identity the backing store holds the objects under."""

    namespaced: bool = True

    short_names: list[str] = field(
        default_factory=list, metadata=field_options(alias="shortNames")
    )

    categories: list[str] = field(default_factory=list)

    class Config(BaseConfig):
        serialize_by_alias = True


def _default_resources() -> list[ResourceConfig]:
    return [ResourceConfig(short_names=["mdep"], categories=["all"])]


@dataclass
class ProxyConfig(DataClassDictMixin):
    """Top level configuration."""

    resources: list[ResourceConfig] = field(default_factory=_default_resources)
    watch: WatchConfig = field(default_factory=WatchConfig)

    @classmethod
    def parse_yaml(cls, content: str) -> "ProxyConfig":
        """Parse a serialized configuration."""
        try:
            return yaml_decode(content, cls)
        except (
            yaml.YAMLError,
            MissingField,
            ValueError,
            TypeError,
            AttributeError,
        ) as err:
            raise ConfigError(f"Invalid configuration: {err}") from err

    def yaml(self) -> str:
        """Return a YAML string representation of the configuration."""
        return yaml.dump(self.to_dict(), sort_keys=False)

    class Config(BaseConfig):
        serialize_by_alias = True


async def read_config(config_path: Path) -> ProxyConfig:
    """Return the contents of a configuration file."""
    _LOGGER.debug("Reading configuration from %s", config_path)
    try:
        async with aiofiles.open(str(config_path)) as config_file:
            content = await config_file.read()
    except (OSError, UnicodeDecodeError) as err:
        raise ConfigError(f"Unable to read configuration {config_path}: {err}") from err
    if not content.strip():
        raise ConfigError(f"Configuration file {config_path} is empty")
    return ProxyConfig.parse_yaml(content)
