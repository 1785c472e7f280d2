"""Cluster object wrappers and relationship data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


@dataclass(frozen=True)
class GroupVersionKind:
    """Three-part type identity of a Kubernetes object."""

    group: str
    version: str
    kind: str

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> GroupVersionKind:
        """Split an ``apiVersion`` such as ``apps/v1`` or ``v1``."""
        group, _, version = api_version.rpartition("/")
        return cls(group=group, version=version, kind=kind)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def group_kind(self) -> str:
        """``Kind`` for the core group, ``Kind.group`` otherwise."""
        return f"{self.kind}.{self.group}" if self.group else self.kind


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp. Returns None when absent or invalid."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    # The zero value of a Go metav1.Time serialises as 0001-01-01T00:00:00Z.
    if parsed.year <= 1:
        return None
    return parsed


@dataclass(frozen=True)
class OwnerReference:
    """One entry of ``metadata.ownerReferences``."""

    uid: str
    kind: str = ""
    name: str = ""


class ClusterObject:
    """Read-only view over one raw, schemaless cluster document.

    Every accessor tolerates missing or mistyped metadata and returns an
    empty value instead of raising.
    """

    __slots__ = ("_content",)

    def __init__(self, content: dict[str, Any]) -> None:
        self._content = content if isinstance(content, dict) else {}

    def __repr__(self) -> str:
        return f"ClusterObject({self.gvk.group_kind}/{self.namespace}/{self.name})"

    @property
    def content(self) -> dict[str, Any]:
        return self._content

    @property
    def metadata(self) -> dict[str, Any]:
        return _as_dict(self._content.get("metadata"))

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind.from_api_version(
            _as_str(self._content.get("apiVersion")),
            _as_str(self._content.get("kind")),
        )

    @property
    def uid(self) -> str:
        return _as_str(self.metadata.get("uid"))

    @property
    def name(self) -> str:
        return _as_str(self.metadata.get("name"))

    @property
    def namespace(self) -> str:
        return _as_str(self.metadata.get("namespace"))

    @property
    def labels(self) -> dict[str, str]:
        return {str(k): str(v) for k, v in _as_dict(self.metadata.get("labels")).items()}

    @property
    def creation_timestamp(self) -> datetime | None:
        return parse_timestamp(self.metadata.get("creationTimestamp"))

    @property
    def owner_references(self) -> list[OwnerReference]:
        refs = self.metadata.get("ownerReferences")
        if not isinstance(refs, list):
            return []
        result = []
        for ref in refs:
            if not isinstance(ref, dict) or not _as_str(ref.get("uid")):
                continue
            result.append(
                OwnerReference(
                    uid=ref["uid"],
                    kind=_as_str(ref.get("kind")),
                    name=_as_str(ref.get("name")),
                )
            )
        return result

    @property
    def sort_key(self) -> tuple[str, str, str, str, str]:
        """Deterministic ordering key: group, kind, namespace, name, uid."""
        gvk = self.gvk
        return (gvk.group, gvk.kind, self.namespace, self.name, self.uid)


class DiagnosticKind(StrEnum):
    """Non-fatal problems found while resolving or building the graph."""

    EXPRESSION_ERROR = "expression_error"
    UNRESOLVED_OWNER = "unresolved_owner"
    CYCLIC_RELATIONSHIP = "cyclic_relationship"
    INVALID_OBJECT = "invalid_object"


@dataclass(frozen=True)
class Diagnostic:
    """A problem local to one object, edge or rule. Never fatal."""

    kind: DiagnosticKind
    message: str
    uid: str = ""


OWNER_REFERENCE = "ownerReference"


@dataclass(frozen=True)
class Edge:
    """A directed owner -> dependent relationship between two UIDs."""

    owner_uid: str
    dependent_uid: str
    relation: str = OWNER_REFERENCE


@dataclass
class ResolutionResult:
    """Edges derived from a snapshot plus the diagnostics collected on the way."""

    edges: list[Edge] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
