"""Minimal JSONPath evaluator for schemaless cluster documents.

Supports the subset of kubectl's JSONPath that column and relation
expressions need:

    {.status.conditions[?(@.type=="Ready")].status}
    .spec.volumes[*].configMap.name
    .metadata.labels['app.kubernetes.io/name']
    .spec.containers[0].image

Missing keys, type mismatches and out-of-range indexes never raise; they
simply contribute no values. Only a malformed expression raises
:class:`~kubelineage.errors.JSONPathError`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from kubelineage.errors import JSONPathError

_RE_IDENT = re.compile(r"[A-Za-z0-9_\-]+")
_RE_INDEX = re.compile(r"-?[0-9]+")
_RE_FILTER = re.compile(r"^@((?:\.[A-Za-z0-9_\-]+)+)\s*(==|!=)\s*(.+)$")


@dataclass(frozen=True)
class _Field:
    name: str


@dataclass(frozen=True)
class _Index:
    index: int


@dataclass(frozen=True)
class _Wildcard:
    pass


@dataclass(frozen=True)
class _Filter:
    path: tuple[str, ...]
    op: str
    literal: Any


_Step = _Field | _Index | _Wildcard | _Filter


def _parse_literal(expression: str, raw: str) -> Any:
    raw = raw.strip()
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return raw[1:-1]
    if raw in ("true", "false"):
        return raw == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        raise JSONPathError(expression, f"unsupported filter literal {raw!r}") from None


def _parse_bracket(expression: str, body: str, pos: int) -> tuple[_Step, int]:
    """Parse the bracket expression starting right after ``[`` at *pos*."""
    if body.startswith("*]", pos):
        return _Wildcard(), pos + 2

    if body.startswith("?(", pos):
        end = body.find(")]", pos)
        if end == -1:
            raise JSONPathError(expression, "unterminated filter")
        match = _RE_FILTER.match(body[pos + 2 : end].strip())
        if match is None:
            raise JSONPathError(expression, "filter must look like ?(@.field==value)")
        path = tuple(match.group(1).lstrip(".").split("."))
        return _Filter(path, match.group(2), _parse_literal(expression, match.group(3))), end + 2

    if pos < len(body) and body[pos] in ("'", '"'):
        quote = body[pos]
        end = body.find(quote + "]", pos + 1)
        if end == -1:
            raise JSONPathError(expression, "unterminated quoted field")
        return _Field(body[pos + 1 : end]), end + 2

    match = _RE_INDEX.match(body, pos)
    if match is None or not body.startswith("]", match.end()):
        raise JSONPathError(expression, f"unexpected bracket content at offset {pos}")
    return _Index(int(match.group(0))), match.end() + 1


def _parse(expression: str) -> tuple[_Step, ...]:
    body = expression.strip()
    if body.startswith("{"):
        if not body.endswith("}"):
            raise JSONPathError(expression, "unbalanced braces")
        body = body[1:-1].strip()
    if body.startswith("$"):
        body = body[1:]
    if not body:
        raise JSONPathError(expression, "empty expression")

    steps: list[_Step] = []
    pos = 0
    while pos < len(body):
        char = body[pos]
        if char == ".":
            match = _RE_IDENT.match(body, pos + 1)
            if match is None:
                raise JSONPathError(expression, f"expected field name at offset {pos + 1}")
            steps.append(_Field(match.group(0)))
            pos = match.end()
        elif char == "[":
            step, pos = _parse_bracket(expression, body, pos + 1)
            steps.append(step)
        else:
            raise JSONPathError(expression, f"unexpected character {char!r} at offset {pos}")
    return tuple(steps)


def _walk_fields(value: Any, path: tuple[str, ...]) -> tuple[bool, Any]:
    for name in path:
        if not isinstance(value, dict) or name not in value:
            return False, None
        value = value[name]
    return True, value


def _matches(item: Any, step: _Filter) -> bool:
    found, value = _walk_fields(item, step.path)
    if step.op == "==":
        return found and value == step.literal
    return not found or value != step.literal


class JSONPath:
    """A compiled field-path expression."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self._steps = _parse(expression)

    def __repr__(self) -> str:
        return f"JSONPath({self.expression!r})"

    def find(self, data: Any) -> list[Any]:
        """Return every value the expression selects from *data*."""
        values = [data]
        for step in self._steps:
            selected: list[Any] = []
            for value in values:
                if isinstance(step, _Field):
                    if isinstance(value, dict) and step.name in value:
                        selected.append(value[step.name])
                elif isinstance(step, _Index):
                    if isinstance(value, list) and -len(value) <= step.index < len(value):
                        selected.append(value[step.index])
                elif isinstance(step, _Wildcard):
                    if isinstance(value, list):
                        selected.extend(value)
                    elif isinstance(value, dict):
                        selected.extend(value.values())
                else:
                    # A filter over a single map treats it as a one-element list.
                    candidates = value if isinstance(value, list) else [value] if isinstance(value, dict) else []
                    selected.extend(item for item in candidates if _matches(item, step))
            values = selected
            if not values:
                break
        return [value for value in values if value is not None]


@lru_cache(maxsize=256)
def compile_path(expression: str) -> JSONPath:
    """Compile *expression*, caching the result. Raises JSONPathError."""
    return JSONPath(expression)


def format_value(value: Any) -> str:
    """Format a selected value the way kubectl prints JSONPath results."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), sort_keys=True)
    return str(value)


def get_nested_string(data: Any, expression: str) -> str:
    """Evaluate *expression* and join every selected value with a comma.

    Returns an empty string when nothing matches; raises JSONPathError only
    for a malformed expression.
    """
    return ",".join(format_value(value) for value in compile_path(expression).find(data))
