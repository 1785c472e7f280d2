"""Column definitions and per-object column extraction."""

from __future__ import annotations

from datetime import datetime, timedelta

from kubelineage.errors import JSONPathError
from kubelineage.lineage.jsonpath import get_nested_string
from kubelineage.models.objects import ClusterObject
from kubelineage.models.rows import ColumnSpec, ObjectColumns
from kubelineage.observability.logging import get_logger

_logger = get_logger("lineage.columns")

CELL_UNKNOWN = "unknown"
CELL_UNSET = "unset"

READY_STATUS_PATH = '{.status.conditions[?(@.type=="Ready")].status}'
READY_REASON_PATH = '{.status.conditions[?(@.type=="Ready")].reason}'

OBJECT_COLUMN_DEFINITIONS: tuple[ColumnSpec, ...] = (
    ColumnSpec(
        name="Name",
        type="string",
        format="name",
        description=(
            "Name must be unique within a namespace. Prefixed with the object's Kind, "
            "or with its Kind and Group when the Kind exists in more than one API group."
        ),
    ),
    ColumnSpec(name="Status", type="string", description="The condition Ready status of the object."),
    ColumnSpec(name="Reason", type="string", description="The condition Ready reason of the object."),
    ColumnSpec(
        name="Age",
        type="string",
        description=(
            "CreationTimestamp is a timestamp representing the server time when this object was created, "
            "shown as the time elapsed since then."
        ),
    ),
)


def human_duration(d: timedelta) -> str:
    """Return a short human-readable approximation of *d*.

    Follows kubectl's duration ladder: seconds, then minutes (with seconds
    below ten minutes), hours (with minutes below eight hours), days (with
    hours below eight days), then years (with days below eight years).
    """
    seconds = int(d.total_seconds())
    if seconds < -1:
        return "<invalid>"
    if seconds < 0:
        return "0s"
    if seconds < 60:
        return f"{seconds}s"

    minutes = seconds // 60
    if minutes < 10:
        s = seconds % 60
        return f"{minutes}m" if s == 0 else f"{minutes}m{s}s"
    if minutes < 60 * 3:
        return f"{minutes}m"

    hours = minutes // 60
    if hours < 8:
        m = minutes % 60
        return f"{hours}h" if m == 0 else f"{hours}h{m}m"
    if hours < 48:
        return f"{hours}h"
    if hours < 24 * 8:
        h = hours % 24
        return f"{hours // 24}d" if h == 0 else f"{hours // 24}d{h}h"
    if hours < 24 * 365 * 2:
        return f"{hours // 24}d"
    if hours < 24 * 365 * 8:
        dy = (hours // 24) % 365
        return f"{hours // 24 // 365}y" if dy == 0 else f"{hours // 24 // 365}y{dy}d"
    return f"{hours // 24 // 365}y"


def translate_timestamp_since(timestamp: datetime | None, now: datetime) -> str:
    """Elapsed time since *timestamp*, or CELL_UNKNOWN when there is none."""
    if timestamp is None:
        return CELL_UNKNOWN
    return human_duration(now - timestamp)


def _nested_string_or_unset(obj: ClusterObject, column: str, expression: str) -> str:
    try:
        value = get_nested_string(obj.content, expression)
    except JSONPathError as exc:
        _logger.debug("column_expression_error", column=column, uid=obj.uid, error=str(exc))
        return CELL_UNSET
    return value or CELL_UNSET


def display_name(obj: ClusterObject, show_group: bool) -> str:
    """``Kind/name``, or ``Kind.group/name`` when *show_group* is set."""
    gvk = obj.gvk
    qualifier = gvk.group_kind if show_group else gvk.kind
    return f"{qualifier}/{obj.name}"


def get_object_columns(obj: ClusterObject, show_group: bool, now: datetime) -> ObjectColumns:
    """Compute Name, Status, Reason and Age for *obj*."""
    return ObjectColumns(
        name=display_name(obj, show_group),
        status=_nested_string_or_unset(obj, "status", READY_STATUS_PATH),
        reason=_nested_string_or_unset(obj, "reason", READY_REASON_PATH),
        age=translate_timestamp_since(obj.creation_timestamp, now),
    )
