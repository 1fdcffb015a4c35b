"""Proxy-apiserver get action."""

import logging
from argparse import ArgumentParser
from argparse import _SubParsersAction as SubParsersAction
from typing import cast

from proxy_apiserver.objects import GenericObject
from proxy_apiserver.options import ListOptions
from proxy_apiserver.request import namespace_context

from .common import (
    add_namespace_flags,
    build_registry,
    request_namespace,
    resolve_storage,
)
from .format import formatter_for

_LOGGER = logging.getLogger(__name__)


class GetAction:
    """Get objects through the external identity."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "get",
                help="Get objects",
                description=(
                    "Print objects of a resource, or of every resource in a category"
                ),
            ),
        )
        args.add_argument(
            "resource", help="Resource name, kind, short name or category"
        )
        args.add_argument("name", nargs="?", help="Name of a single object")
        add_namespace_flags(args)
        args.add_argument("--selector", "-l", help="Label selector to filter on")
        args.add_argument(
            "--output",
            "-o",
            choices=["yaml", "json", "name"],
            default=None,
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        resource: str,
        name: str | None,
        namespace: str | None,
        all_namespaces: bool,
        selector: str | None,
        output: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        registry = await build_registry(**kwargs)
        results: list[GenericObject] = []
        for storage in resolve_storage(registry, resource):
            scope = request_namespace(storage, namespace, all_namespaces)
            with namespace_context(scope):
                if name:
                    results.append(await storage.get(name))
                else:
                    object_list = await storage.list(
                        ListOptions(label_selector=selector)
                    )
                    results.extend(object_list.items)

        if not results:
            print("No resources found")
            return
        formatter_for(output, with_namespace=all_namespaces).print(results)
