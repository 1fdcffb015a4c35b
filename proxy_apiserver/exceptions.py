"""Exceptions related to proxy-apiserver."""

from typing import Any

from .objects import status_object

__all__ = [
    "ProxyException",
    "InvalidRequestError",
    "ValidationError",
    "NotFoundError",
    "AlreadyExistsError",
    "ConflictError",
    "PreconditionFailedError",
    "BackingStoreError",
    "PartialDeleteError",
    "SlowConsumerError",
    "ConfigError",
    "status_for_error",
]


class ProxyException(Exception):
    """Generic base exception used for this library."""

    code: int = 500
    reason: str = "InternalError"


class InvalidRequestError(ProxyException):
    """Raised when request options or scoping are not valid."""

    code = 400
    reason = "BadRequest"


class ValidationError(ProxyException):
    """Raised by a validation callback when an object is rejected."""

    code = 422
    reason = "Invalid"


class NotFoundError(ProxyException):
    """Raised when the backing store has no object with the given name."""

    code = 404
    reason = "NotFound"

    def __init__(self, resource: str, name: str, namespace: str | None = None) -> None:
        self.resource = resource
        self.name = name
        self.namespace = namespace
        super().__init__(f'{resource} "{name}" not found')


class AlreadyExistsError(ProxyException):
    """Raised when creating an object whose name is already taken."""

    code = 409
    reason = "AlreadyExists"

    def __init__(self, resource: str, name: str) -> None:
        self.resource = resource
        self.name = name
        super().__init__(f'{resource} "{name}" already exists')


class ConflictError(ProxyException):
    """Raised when an object was modified since it was read."""

    code = 409
    reason = "Conflict"


class PreconditionFailedError(ConflictError):
    """Raised when a uid or resourceVersion precondition does not match."""

    def __init__(self, field: str, expected: str, actual: str | None) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Precondition failed: {field}: expected {expected!r}, got {actual!r}"
        )


class BackingStoreError(ProxyException):
    """Raised when the backing client fails for any other reason."""


class PartialDeleteError(ProxyException):
    """Raised when a collection delete stops part way through.

    Objects deleted before the failure stay deleted and are available in
    `deleted`. The failure of the item that stopped the operation is `error`.
    """

    def __init__(self, deleted: Any, error: Exception) -> None:
        self.deleted = deleted
        self.error = error
        super().__init__(
            f"Deleted {len(deleted.items)} object(s) before failure: {error}"
        )
        if isinstance(error, ProxyException):
            self.code = error.code
            self.reason = error.reason


class SlowConsumerError(ProxyException):
    """Raised when a watch consumer does not read events fast enough."""

    code = 504
    reason = "Timeout"


class ConfigError(ProxyException):
    """Raised when the configuration file is not formatted as expected."""


def status_for_error(err: Exception) -> dict[str, Any]:
    """Return a Status document describing the error."""
    return status_object(
        getattr(err, "code", 500),
        getattr(err, "reason", "InternalError"),
        str(err),
    )
