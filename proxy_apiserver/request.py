"""Request scoped values, currently the namespace of the request."""

import contextvars
from contextlib import contextmanager
from typing import Generator

__all__ = [
    "namespace_from",
    "namespace_context",
]


_namespace_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "_namespace_ctx", default=None
)


def namespace_from() -> str | None:
    """Return the namespace of the current request, if any."""
    return _namespace_ctx.get()


@contextmanager
def namespace_context(namespace: str | None) -> Generator[None, None, None]:
    """Run the enclosed operations against the given namespace.

    An empty or `None` namespace means all namespaces.
    """
    token = _namespace_ctx.set(namespace or None)
    try:
        yield
    finally:
        _namespace_ctx.reset(token)
