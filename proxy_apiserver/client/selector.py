"""Label and field selector parsing and matching.

Label selectors support equality (`a=b`, `a==b`, `a!=b`), set based
(`a in (x,y)`, `a notin (x,y)`) and existence (`a`, `!a`) requirements. Field
selectors support equality on dotted object paths (`metadata.name=web`).
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from proxy_apiserver.exceptions import InvalidRequestError

__all__ = [
    "Operator",
    "Requirement",
    "LabelSelector",
    "FieldSelector",
    "parse_label_selector",
    "parse_field_selector",
]


KEY_RE = re.compile(r"^[A-Za-z0-9]([-A-Za-z0-9_./]*[A-Za-z0-9])?$")
SET_RE = re.compile(r"^(?P<key>\S+)\s+(?P<op>in|notin)\s*\((?P<values>[^()]*)\)$")
EQUALITY_RE = re.compile(r"^(?P<key>[^!=\s]+)\s*(?P<op>==|!=|=)\s*(?P<value>\S*)$")


class Operator(StrEnum):
    """Operator of a selector requirement."""

    EQUALS = "="
    NOT_EQUALS = "!="
    IN = "in"
    NOT_IN = "notin"
    EXISTS = "exists"
    DOES_NOT_EXIST = "!"


@dataclass(frozen=True)
class Requirement:
    """A single term of a selector."""

    key: str
    operator: Operator
    values: frozenset[str] = frozenset()

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Return True if the labels satisfy this requirement."""
        present = self.key in labels
        match self.operator:
            case Operator.EXISTS:
                return present
            case Operator.DOES_NOT_EXIST:
                return not present
            case Operator.EQUALS | Operator.IN:
                return present and labels[self.key] in self.values
            case Operator.NOT_EQUALS | Operator.NOT_IN:
                return not present or labels[self.key] not in self.values
        return False


@dataclass(frozen=True)
class LabelSelector:
    """A conjunction of label requirements; an empty selector matches all."""

    requirements: tuple[Requirement, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        return all(req.matches(labels) for req in self.requirements)


@dataclass(frozen=True)
class FieldSelector:
    """A conjunction of field requirements; an empty selector matches all."""

    requirements: tuple[Requirement, ...] = ()

    def matches(self, obj: Mapping[str, Any]) -> bool:
        for req in self.requirements:
            value = _field_value(obj, req.key)
            if not req.matches({req.key: value}):
                return False
        return True


def _field_value(obj: Mapping[str, Any], path: str) -> str:
    value: Any = obj
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return ""
        value = value.get(part)
    if value is None:
        return ""
    return str(value)


def _split_terms(expr: str) -> list[str]:
    """Split on commas that are not inside a value set."""
    terms: list[str] = []
    depth = 0
    current: list[str] = []
    for char in expr:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise InvalidRequestError(
                    f"Unbalanced parentheses in selector '{expr}'"
                )
        if char == "," and depth == 0:
            terms.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    if depth != 0:
        raise InvalidRequestError(f"Unbalanced parentheses in selector '{expr}'")
    terms.append("".join(current).strip())
    return terms


def _check_key(key: str, expr: str) -> str:
    if not KEY_RE.match(key):
        raise InvalidRequestError(f"Invalid key '{key}' in selector '{expr}'")
    return key


def _parse_requirement(term: str, expr: str) -> Requirement:
    if match := SET_RE.match(term):
        values = frozenset(
            value.strip() for value in match.group("values").split(",") if value.strip()
        )
        if not values:
            raise InvalidRequestError(f"Empty value set in selector '{expr}'")
        operator = Operator.IN if match.group("op") == "in" else Operator.NOT_IN
        return Requirement(_check_key(match.group("key"), expr), operator, values)
    if match := EQUALITY_RE.match(term):
        operator = (
            Operator.NOT_EQUALS if match.group("op") == "!=" else Operator.EQUALS
        )
        return Requirement(
            _check_key(match.group("key"), expr),
            operator,
            frozenset({match.group("value")}),
        )
    if term.startswith("!"):
        return Requirement(_check_key(term[1:].strip(), expr), Operator.DOES_NOT_EXIST)
    return Requirement(_check_key(term, expr), Operator.EXISTS)


def parse_label_selector(expr: str | None) -> LabelSelector:
    """Parse a label selector expression."""
    if not expr or not expr.strip():
        return LabelSelector()
    requirements = []
    for term in _split_terms(expr):
        if not term:
            raise InvalidRequestError(f"Empty term in selector '{expr}'")
        requirements.append(_parse_requirement(term, expr))
    return LabelSelector(tuple(requirements))


def parse_field_selector(expr: str | None) -> FieldSelector:
    """Parse a field selector expression."""
    if not expr or not expr.strip():
        return FieldSelector()
    requirements = []
    for term in expr.split(","):
        if not (match := EQUALITY_RE.match(term.strip())):
            raise InvalidRequestError(f"Invalid field selector term '{term}'")
        operator = (
            Operator.NOT_EQUALS if match.group("op") == "!=" else Operator.EQUALS
        )
        requirements.append(
            Requirement(match.group("key"), operator, frozenset({match.group("value")}))
        )
    return FieldSelector(tuple(requirements))
