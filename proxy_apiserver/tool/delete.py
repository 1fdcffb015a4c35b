"""Proxy-apiserver delete action."""

import logging
from argparse import ArgumentParser
from argparse import _SubParsersAction as SubParsersAction
from typing import cast

from proxy_apiserver.exceptions import InvalidRequestError, PartialDeleteError
from proxy_apiserver.objects import GenericObject, get_name
from proxy_apiserver.options import ListOptions
from proxy_apiserver.request import namespace_context

from .common import add_namespace_flags, build_registry, request_namespace

_LOGGER = logging.getLogger(__name__)


def _print_deleted(resource: str, objects: list[GenericObject]) -> None:
    for obj in objects:
        print(f'{resource} "{get_name(obj)}" deleted')


class DeleteAction:
    """Delete objects through the external identity."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "delete",
                help="Delete objects",
                description=(
                    "Delete a single object or every object matching a selector"
                ),
            ),
        )
        args.add_argument("resource", help="Resource name, kind or short name")
        args.add_argument("name", nargs="?", help="Name of a single object")
        args.add_argument(
            "--all",
            dest="delete_all",
            action="store_true",
            help="Delete all objects matching the selector",
        )
        args.add_argument("--selector", "-l", help="Label selector to filter on")
        add_namespace_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        resource: str,
        name: str | None,
        delete_all: bool,
        selector: str | None,
        namespace: str | None,
        all_namespaces: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        if not name and not delete_all:
            raise InvalidRequestError("resource name or --all is required")
        registry = await build_registry(**kwargs)
        storage = registry.lookup(resource)
        with namespace_context(request_namespace(storage, namespace, all_namespaces)):
            if name:
                obj, _ = await storage.delete(name)
                _print_deleted(storage.resource, [obj])
                return
            try:
                deleted = await storage.delete_collection(
                    list_options=ListOptions(label_selector=selector)
                )
            except PartialDeleteError as err:
                _print_deleted(storage.resource, err.deleted.items)
                raise
        _print_deleted(storage.resource, deleted.items)
