"""Command line tool for serving objects of one resource through another.

The tool loads the resource configuration, seeds an in-memory backing store
with objects in their stored form and runs a single request against the
exposed (external) resources.
"""

import argparse
import asyncio
import logging
import pathlib
import sys
import traceback

from proxy_apiserver.exceptions import ProxyException

from . import apply, delete, get

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Command line utility for a resource remapping API storage adapter."
        ),
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )
    parser.add_argument(
        "--config",
        type=pathlib.Path,
        default=None,
        help="YAML file describing the exposed resources",
    )
    parser.add_argument(
        "--objects",
        type=pathlib.Path,
        action="append",
        default=None,
        help="YAML file of stored objects to seed the backing store with",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    get.GetAction.register(subparsers)
    apply.ApplyAction.register(subparsers)
    delete.DeleteAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Proxy-apiserver command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except ProxyException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("proxy-apiserver error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
