"""Tree renderer: walks a NodeMap from a root into ordered display rows.

The walk uses an explicit work-list of ``(uid, prefix, guide, depth)``
entries instead of recursion. Rows come out in pre-order:

    Deployment/web
    ├── ReplicaSet/web-5d78c9869d
    │   ├── Pod/web-5d78c9869d-2x7lq
    │   └── Pod/web-5d78c9869d-9kq4m
    └── Service/web

A node reachable from several parents is emitted once, under the parent
that reaches it first in pre-order. When output is truncated to a maximum
depth, a shared node is instead placed at its shallowest depth, so
everything within the limit is shown.
"""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from kubelineage.errors import CorruptNodeMapError, LineageError, TraversalDepthError
from kubelineage.lineage.columns import OBJECT_COLUMN_DEFINITIONS, get_object_columns
from kubelineage.lineage.disambiguation import KindDisambiguator
from kubelineage.lineage.nodemap import NodeMap
from kubelineage.models.rows import ColumnSpec, DisplayRow, RenderResult
from kubelineage.observability.logging import get_logger

_logger = get_logger("lineage.printer")

BRANCH_TEE = "├── "
BRANCH_CORNER = "└── "
GUIDE_CONTINUE = "│   "
GUIDE_BLANK = "    "

DEFAULT_MAX_TRAVERSAL_DEPTH = 256


def _shallowest_depths(node_map: NodeMap, root_uid: str) -> dict[str, int]:
    """Breadth-first distance from *root_uid* to every reachable UID."""
    depths = {root_uid: 0}
    queue = deque([root_uid])
    while queue:
        uid = queue.popleft()
        if uid not in node_map:
            continue
        for child in node_map[uid].dependents:
            if child not in depths:
                depths[child] = depths[uid] + 1
                queue.append(child)
    return depths


def _spanning_tree(node_map: NodeMap, root_uid: str, max_depth: int = 0) -> dict[str, list[str]]:
    """Children each node is emitted with: first pre-order claim wins.

    With *max_depth* set, a parent only claims a child that has no
    shallower path from the root, and parents at the limit claim nothing.
    Dangling dependent UIDs are kept as leaves so the walk fails at the
    point it reaches them, after every earlier row has been emitted.
    """
    shallowest = _shallowest_depths(node_map, root_uid) if max_depth else None
    tree: dict[str, list[str]] = {root_uid: []}
    stack = [(root_uid, 0, iter(node_map[root_uid].dependents))]
    while stack:
        uid, depth, dependents = stack[-1]
        child = next(dependents, None)
        if child is None:
            stack.pop()
            continue
        if child in tree:
            continue
        if shallowest is not None and shallowest[child] != depth + 1:
            continue
        tree[uid].append(child)
        tree[child] = []
        if child in node_map and not (max_depth and depth + 1 >= max_depth):
            stack.append((child, depth + 1, iter(node_map[child].dependents)))
    return tree


class TreePrinter:
    """Renders lineage trees from one NodeMap.

    The disambiguation table is computed once per NodeMap, so a printer can
    render many roots and every report names each Kind the same way.
    """

    def __init__(
        self,
        node_map: NodeMap,
        show_group: bool = False,
        max_traversal_depth: int = DEFAULT_MAX_TRAVERSAL_DEPTH,
    ) -> None:
        self.node_map = node_map
        self.disambiguator = KindDisambiguator(node_map, force_group=show_group)
        self.max_traversal_depth = max_traversal_depth

    def render(self, root_uid: str, now: datetime | None = None, max_depth: int = 0) -> RenderResult:
        """Render the lineage of *root_uid*.

        *max_depth* truncates output below that many levels (0 means no
        limit). Failures never discard work: the result holds every row
        emitted before the error.
        """
        now = now or datetime.now(tz=UTC)
        result = RenderResult()
        if root_uid not in self.node_map:
            result.error = CorruptNodeMapError("<root>", root_uid)
            return result

        try:
            self._walk(root_uid, now, max_depth, result.rows)
        except LineageError as exc:
            _logger.warning("render_incomplete", root=root_uid, rows=len(result.rows), error=str(exc))
            result.error = exc
        return result

    def _walk(self, root_uid: str, now: datetime, max_depth: int, rows: list[DisplayRow]) -> None:
        tree = _spanning_tree(self.node_map, root_uid, max_depth)
        # (uid, parent uid, row prefix, guide for the node's own children, depth)
        work: list[tuple[str, str, str, str, int]] = [(root_uid, "", "", "", 0)]
        while work:
            uid, parent_uid, prefix, guide, depth = work.pop()
            if depth > self.max_traversal_depth:
                raise TraversalDepthError(self.max_traversal_depth, uid)
            if uid not in self.node_map:
                raise CorruptNodeMapError(parent_uid, uid)

            obj = self.node_map[uid].object
            # Decided once per Kind over the whole map, so a Kind never renders two ways.
            show_group = self.disambiguator.requires_group(obj.gvk.kind)

            rows.append(
                DisplayRow(
                    prefix=prefix,
                    columns=get_object_columns(obj, show_group, now),
                    object=obj.content,
                    uid=uid,
                    depth=depth,
                )
            )

            if max_depth and depth >= max_depth:
                continue
            children = tree[uid]
            for i in reversed(range(len(children))):
                if i == len(children) - 1:
                    row_prefix, child_guide = guide + BRANCH_CORNER, guide + GUIDE_BLANK
                else:
                    row_prefix, child_guide = guide + BRANCH_TEE, guide + GUIDE_CONTINUE
                work.append((children[i], uid, row_prefix, child_guide, depth + 1))


def print_node_map(
    node_map: NodeMap,
    root_uid: str,
    show_group: bool = False,
    now: datetime | None = None,
    max_depth: int = 0,
    max_traversal_depth: int = DEFAULT_MAX_TRAVERSAL_DEPTH,
) -> RenderResult:
    """Render the lineage of *root_uid* as display rows."""
    printer = TreePrinter(node_map, show_group=show_group, max_traversal_depth=max_traversal_depth)
    return printer.render(root_uid, now=now, max_depth=max_depth)


def format_table(
    rows: Sequence[DisplayRow],
    columns: Sequence[ColumnSpec] = OBJECT_COLUMN_DEFINITIONS,
    no_headers: bool = False,
) -> str:
    """Lay rows out as kubectl-style aligned columns."""
    lines: list[tuple[str, ...]] = []
    if not no_headers:
        lines.append(tuple(column.name.upper() for column in columns))
    lines.extend(row.cells[: len(columns)] for row in rows)
    if not lines:
        return ""

    widths = [max(len(line[i]) for line in lines) for i in range(len(columns))]
    out = []
    for line in lines:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(line[:-1])]
        out.append("   ".join([*padded, line[-1]]).rstrip())
    return "\n".join(out)


def to_table_document(
    rows: Sequence[DisplayRow],
    columns: Sequence[ColumnSpec] = OBJECT_COLUMN_DEFINITIONS,
) -> dict[str, Any]:
    """Rows as a ``meta.k8s.io/v1`` Table document for structured output."""
    return {
        "kind": "Table",
        "apiVersion": "meta.k8s.io/v1",
        "metadata": {},
        "columnDefinitions": [
            {
                "name": column.name,
                "type": column.type,
                "format": column.format,
                "description": column.description,
                "priority": column.priority,
            }
            for column in columns
        ],
        "rows": [{"cells": list(row.cells[: len(columns)]), "object": row.object} for row in rows],
    }


def format_json(rows: Sequence[DisplayRow], columns: Sequence[ColumnSpec] = OBJECT_COLUMN_DEFINITIONS) -> str:
    return json.dumps(to_table_document(rows, columns), indent=4, ensure_ascii=False)
