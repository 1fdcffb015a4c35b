"""
proxy-apiserver exposes API resources under one identity while storing them
under another.

The storage adapter in `proxy_apiserver.storage` is what an API server
dispatches resource requests to; it delegates all persistence to a generic
backing client from `proxy_apiserver.client`.
"""

__all__ = [
    "client",
    "config",
    "exceptions",
    "objects",
    "options",
    "registry",
    "request",
    "resource",
    "storage",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
