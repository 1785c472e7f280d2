"""Core data structures for kubelineage."""

from kubelineage.models.config import FetchConfig, LineageConfig, LogConfig, RenderConfig
from kubelineage.models.objects import (
    OWNER_REFERENCE,
    ClusterObject,
    Diagnostic,
    DiagnosticKind,
    Edge,
    GroupVersionKind,
    OwnerReference,
    ResolutionResult,
)
from kubelineage.models.rows import ColumnSpec, DisplayRow, ObjectColumns, RenderResult

__all__ = [
    "OWNER_REFERENCE",
    "ClusterObject",
    "ColumnSpec",
    "Diagnostic",
    "DiagnosticKind",
    "DisplayRow",
    "Edge",
    "FetchConfig",
    "GroupVersionKind",
    "LineageConfig",
    "LogConfig",
    "ObjectColumns",
    "OwnerReference",
    "RenderConfig",
    "RenderResult",
    "ResolutionResult",
]
