"""Request options for storage operations.

Options serialize with the Kubernetes query parameter names (`labelSelector`,
`resourceVersion`, `continue`, ...) and omit unset values, which is the shape
the backing client receives.
"""

from dataclasses import dataclass, field, replace

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

from .exceptions import InvalidRequestError

__all__ = [
    "GetOptions",
    "ListOptions",
    "CreateOptions",
    "UpdateOptions",
    "DeleteOptions",
    "Preconditions",
    "to_backing_list_options",
]


class _OptionsConfig(BaseConfig):
    omit_none = True
    serialize_by_alias = True


@dataclass
class GetOptions(DataClassDictMixin):
    """Options for reading a single object."""

    resource_version: str | None = field(
        default=None, metadata=field_options(alias="resourceVersion")
    )

    class Config(_OptionsConfig):
        pass


@dataclass
class ListOptions(DataClassDictMixin):
    """Options for listing or watching objects."""

    label_selector: str | None = field(
        default=None, metadata=field_options(alias="labelSelector")
    )
    """Label selector expression, e.g. `app=web,tier!=db`."""

    field_selector: str | None = field(
        default=None, metadata=field_options(alias="fieldSelector")
    )
    """Field selector expression, e.g. `metadata.name=web`."""

    resource_version: str | None = field(
        default=None, metadata=field_options(alias="resourceVersion")
    )

    resource_version_match: str | None = field(
        default=None, metadata=field_options(alias="resourceVersionMatch")
    )

    limit: int | None = None
    """Maximum number of items in a page."""

    continue_: str | None = field(
        default=None, metadata=field_options(alias="continue")
    )
    """Token returned by a previous page."""

    timeout_seconds: int | None = field(
        default=None, metadata=field_options(alias="timeoutSeconds")
    )

    allow_watch_bookmarks: bool | None = field(
        default=None, metadata=field_options(alias="allowWatchBookmarks")
    )

    class Config(_OptionsConfig):
        pass


@dataclass
class CreateOptions(DataClassDictMixin):
    """Options for creating an object."""

    dry_run: list[str] | None = field(
        default=None, metadata=field_options(alias="dryRun")
    )
    field_manager: str | None = field(
        default=None, metadata=field_options(alias="fieldManager")
    )

    class Config(_OptionsConfig):
        pass


@dataclass
class UpdateOptions(DataClassDictMixin):
    """Options for updating an object."""

    dry_run: list[str] | None = field(
        default=None, metadata=field_options(alias="dryRun")
    )
    field_manager: str | None = field(
        default=None, metadata=field_options(alias="fieldManager")
    )

    class Config(_OptionsConfig):
        pass


@dataclass(frozen=True)
class Preconditions(DataClassDictMixin):
    """Expected uid and/or resourceVersion of an object before it is changed."""

    uid: str | None = None
    resource_version: str | None = field(
        default=None, metadata=field_options(alias="resourceVersion")
    )

    class Config(_OptionsConfig):
        pass


@dataclass
class DeleteOptions(DataClassDictMixin):
    """Options for deleting an object."""

    grace_period_seconds: int | None = field(
        default=None, metadata=field_options(alias="gracePeriodSeconds")
    )
    propagation_policy: str | None = field(
        default=None, metadata=field_options(alias="propagationPolicy")
    )
    preconditions: Preconditions | None = None
    dry_run: list[str] | None = field(
        default=None, metadata=field_options(alias="dryRun")
    )

    class Config(_OptionsConfig):
        pass


def to_backing_list_options(options: ListOptions | None) -> ListOptions:
    """Translate caller list options into options for the backing client.

    Returns a new object so the caller's options are never shared with the
    backing client.
    """
    if options is None:
        return ListOptions()
    if options.limit is not None and options.limit < 0:
        raise InvalidRequestError(f"limit must be non-negative, got {options.limit}")
    if options.timeout_seconds is not None and options.timeout_seconds < 0:
        raise InvalidRequestError(
            f"timeoutSeconds must be non-negative, got {options.timeout_seconds}"
        )
    if options.continue_ and options.resource_version not in (None, "", "0"):
        raise InvalidRequestError(
            "specifying resourceVersion is not allowed when using continue"
        )
    return replace(options)
