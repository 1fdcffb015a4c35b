"""Library for formatting command output."""

import json
import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO

import yaml

from proxy_apiserver.objects import GenericObject, get_name, get_namespace

__all__ = [
    "ObjectFormatter",
    "TableFormatter",
    "YamlFormatter",
    "JsonFormatter",
    "NameFormatter",
    "formatter_for",
]

PADDING = 3


class ObjectFormatter(ABC):
    """Prints objects returned by the storage."""

    @abstractmethod
    def print(
        self, objects: list[GenericObject], file: TextIO | None = None
    ) -> None:
        """Print the objects, to stdout unless a file is given."""


class TableFormatter(ObjectFormatter):
    """Prints a human readable table of object names."""

    def __init__(self, with_namespace: bool = False) -> None:
        """Initialize TableFormatter."""
        self._with_namespace = with_namespace

    def rows(self, objects: list[GenericObject]) -> list[list[str]]:
        headers = ["NAME"]
        if self._with_namespace:
            headers.insert(0, "NAMESPACE")
        rows = [headers]
        for obj in objects:
            row = [get_name(obj)]
            if self._with_namespace:
                row.insert(0, get_namespace(obj) or "")
            rows.append(row)
        return rows

    def print(
        self, objects: list[GenericObject], file: TextIO | None = None
    ) -> None:
        file = file or sys.stdout
        if not objects:
            return
        rows = self.rows(objects)
        widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
        for row in rows:
            line = "".join(
                value.ljust(width + PADDING) for value, width in zip(row, widths)
            )
            print(line.rstrip(), file=file)


class YamlFormatter(ObjectFormatter):
    """Prints each object as a YAML document."""

    def print(
        self, objects: list[GenericObject], file: TextIO | None = None
    ) -> None:
        file = file or sys.stdout
        print(
            yaml.dump_all(objects, sort_keys=False, explicit_start=True),
            end="",
            file=file,
        )


class JsonFormatter(ObjectFormatter):
    """Prints a single object as JSON, or several wrapped in a List."""

    def print(
        self, objects: list[GenericObject], file: TextIO | None = None
    ) -> None:
        file = file or sys.stdout
        data: Any = objects[0] if len(objects) == 1 else {
            "apiVersion": "v1",
            "kind": "List",
            "items": objects,
        }
        json.dump(data, sort_keys=False, indent=4, fp=file)
        print(file=file)


class NameFormatter(ObjectFormatter):
    """Prints `kind/name` for each object."""

    def print(
        self, objects: list[GenericObject], file: TextIO | None = None
    ) -> None:
        file = file or sys.stdout
        for obj in objects:
            print(f"{obj.get('kind', '').lower()}/{get_name(obj)}", file=file)


def formatter_for(output: str | None, with_namespace: bool = False) -> ObjectFormatter:
    """Return the formatter for an `--output` value."""
    if output == "yaml":
        return YamlFormatter()
    if output == "json":
        return JsonFormatter()
    if output == "name":
        return NameFormatter()
    return TableFormatter(with_namespace=with_namespace)
