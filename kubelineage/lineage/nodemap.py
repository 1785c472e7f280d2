"""NodeMap assembly: fetched objects + edges -> immutable lineage graph."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from kubelineage.lineage.relations import DEFAULT_RELATION_RULES, RelationRule, resolve_relationships
from kubelineage.models.objects import (
    ClusterObject,
    Diagnostic,
    DiagnosticKind,
    Edge,
    GroupVersionKind,
)
from kubelineage.observability.logging import get_logger

_logger = get_logger("lineage.nodemap")

_ON_PATH = 1
_DONE = 2


@dataclass(frozen=True)
class Node:
    """One cluster object in the lineage graph with its sorted dependents."""

    object: ClusterObject
    dependents: tuple[str, ...] = ()

    @property
    def uid(self) -> str:
        return self.object.uid

    @property
    def gvk(self) -> GroupVersionKind:
        return self.object.gvk


class NodeMap(Mapping[str, Node]):
    """Read-only mapping of UID -> Node.

    Built once by :func:`build_node_map`; never mutated afterwards, so it
    can be rendered from several roots concurrently without locking.
    """

    def __init__(self, nodes: Mapping[str, Node], diagnostics: Iterable[Diagnostic] = ()) -> None:
        self._nodes: Mapping[str, Node] = MappingProxyType(dict(nodes))
        self._diagnostics = tuple(diagnostics)

    def __getitem__(self, uid: str) -> Node:
        return self._nodes[uid]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"NodeMap(nodes={len(self)}, diagnostics={len(self._diagnostics)})"

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return self._diagnostics

    def roots(self) -> list[Node]:
        """Nodes that are nobody's dependent, in sort-key order."""
        dependents = {uid for node in self._nodes.values() for uid in node.dependents}
        roots = [node for uid, node in self._nodes.items() if uid not in dependents]
        return sorted(roots, key=lambda node: node.object.sort_key)


def _break_cycles(
    objects: Mapping[str, ClusterObject],
    adjacency: Mapping[str, list[str]],
    diagnostics: list[Diagnostic],
) -> dict[str, list[str]]:
    """Depth-first walk dropping every edge that points back at an ancestor.

    Roots are walked first in sort-key order, then any node a pure cycle
    left unvisited, so the set of dropped edges is deterministic.
    """
    incoming = {uid for children in adjacency.values() for uid in children}
    by_key = sorted(objects, key=lambda uid: objects[uid].sort_key)
    start_order = [uid for uid in by_key if uid not in incoming] + by_key

    kept: dict[str, list[str]] = {uid: [] for uid in objects}
    state: dict[str, int] = {}
    for start in start_order:
        if start in state:
            continue
        state[start] = _ON_PATH
        stack: list[tuple[str, Iterator[str]]] = [(start, iter(adjacency[start]))]
        while stack:
            uid, children = stack[-1]
            child = next(children, None)
            if child is None:
                state[uid] = _DONE
                stack.pop()
                continue
            if state.get(child) == _ON_PATH:
                owner, dependent = objects[uid], objects[child]
                _logger.warning(
                    "cyclic_relationship_dropped",
                    owner=f"{owner.gvk.kind}/{owner.name}",
                    dependent=f"{dependent.gvk.kind}/{dependent.name}",
                )
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.CYCLIC_RELATIONSHIP,
                        f"dropped edge {owner.gvk.kind}/{owner.name} -> {dependent.gvk.kind}/{dependent.name}",
                        uid=child,
                    )
                )
                continue
            kept[uid].append(child)
            if child not in state:
                state[child] = _ON_PATH
                stack.append((child, iter(adjacency[child])))
    return kept


def build_node_map(
    objects: Iterable[ClusterObject | dict[str, Any]],
    edges: Iterable[Edge],
    diagnostics: Iterable[Diagnostic] = (),
) -> NodeMap:
    """Assemble an acyclic NodeMap with deterministically ordered dependents.

    A later object with an already-seen UID replaces the earlier one.
    Edges referencing unknown UIDs, and self edges, are ignored. Every
    Dependents list is sorted by group, kind, namespace, name (then uid).
    """
    collected = list(diagnostics)
    by_uid: dict[str, ClusterObject] = {}
    for item in objects:
        obj = item if isinstance(item, ClusterObject) else ClusterObject(item)
        if not obj.uid:
            collected.append(
                Diagnostic(
                    DiagnosticKind.INVALID_OBJECT,
                    f"{obj.gvk.kind or '<no kind>'}/{obj.name or '<no name>'} has no uid and was skipped",
                )
            )
            continue
        by_uid[obj.uid] = obj

    targets: dict[str, set[str]] = {uid: set() for uid in by_uid}
    for edge in edges:
        if edge.owner_uid == edge.dependent_uid:
            continue
        if edge.owner_uid in by_uid and edge.dependent_uid in by_uid:
            targets[edge.owner_uid].add(edge.dependent_uid)

    adjacency = {uid: sorted(children, key=lambda c: by_uid[c].sort_key) for uid, children in targets.items()}
    kept = _break_cycles(by_uid, adjacency, collected)

    nodes = {uid: Node(object=obj, dependents=tuple(kept[uid])) for uid, obj in by_uid.items()}
    node_map = NodeMap(nodes, collected)
    _logger.debug("node_map_built", nodes=len(node_map), diagnostics=len(collected))
    return node_map


def build_lineage(
    objects: Iterable[ClusterObject | dict[str, Any]],
    rules: Iterable[RelationRule] = DEFAULT_RELATION_RULES,
) -> NodeMap:
    """Resolve relationships over a fetched snapshot and assemble its NodeMap."""
    wrapped = [item if isinstance(item, ClusterObject) else ClusterObject(item) for item in objects]
    resolution = resolve_relationships(wrapped, rules)
    return build_node_map(wrapped, resolution.edges, resolution.diagnostics)
