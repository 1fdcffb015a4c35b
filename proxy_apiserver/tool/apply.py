"""Proxy-apiserver apply action."""

import logging
import pathlib
from argparse import ArgumentParser
from argparse import _SubParsersAction as SubParsersAction
from typing import cast

from proxy_apiserver.exceptions import InvalidRequestError
from proxy_apiserver.objects import get_name, get_namespace
from proxy_apiserver.request import namespace_context
from proxy_apiserver.storage import DefaultUpdatedObjectInfo, ProxyStorage

from .common import add_namespace_flags, build_registry, read_documents

_LOGGER = logging.getLogger(__name__)


class ApplyAction:
    """Create or replace objects given in their external form."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "apply",
                help="Apply objects from a file",
                description=(
                    "Update objects from a file, creating any that do not exist"
                ),
            ),
        )
        args.add_argument(
            "--filename",
            "-f",
            type=pathlib.Path,
            required=True,
            help="YAML file with one or more objects",
        )
        add_namespace_flags(args, all_namespaces=False)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        filename: pathlib.Path,
        namespace: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        registry = await build_registry(**kwargs)
        by_kind: dict[tuple[str, str], ProxyStorage] = {
            (storage.mapper.external.api_version, storage.mapper.external.kind): storage
            for storage in registry
        }
        for doc in await read_documents(filename):
            api_version = doc.get("apiVersion", "")
            kind = doc.get("kind", "")
            if (storage := by_kind.get((api_version, kind))) is None:
                raise InvalidRequestError(
                    f'no matches for kind "{kind}" in version "{api_version}"'
                )
            scope = None
            if storage.namespace_scoped:
                scope = get_namespace(doc) or namespace
            with namespace_context(scope):
                obj, created = await storage.update(
                    get_name(doc),
                    DefaultUpdatedObjectInfo(doc),
                    force_allow_create=True,
                )
            result = "created" if created else "configured"
            print(f"{storage.resource}/{get_name(obj)} {result}")
