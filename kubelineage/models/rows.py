"""Display column and row data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kubelineage.errors import LineageError


@dataclass(frozen=True)
class ColumnSpec:
    """Display column descriptor, mirroring ``meta.k8s.io/v1`` TableColumnDefinition."""

    name: str
    type: str = "string"
    format: str = ""
    description: str = ""
    priority: int = 0


@dataclass(frozen=True)
class ObjectColumns:
    """The four standard columns computed for one object."""

    name: str
    status: str
    reason: str
    age: str


@dataclass(frozen=True)
class DisplayRow:
    """One output row: tree-prefixed cells plus the raw object they describe."""

    prefix: str
    columns: ObjectColumns
    object: dict[str, Any]
    uid: str = ""
    depth: int = 0

    @property
    def display_name(self) -> str:
        return self.prefix + self.columns.name

    @property
    def cells(self) -> tuple[str, str, str, str]:
        return (self.display_name, self.columns.status, self.columns.reason, self.columns.age)


@dataclass
class RenderResult:
    """Rows produced by one render, plus the error that stopped it, if any.

    When ``error`` is set, ``rows`` still holds every row emitted before the
    failure.
    """

    rows: list[DisplayRow] = field(default_factory=list)
    error: LineageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
