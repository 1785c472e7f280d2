"""Kind/Group disambiguation for display names.

When two objects in the same NodeMap share a Kind but belong to different
API groups (``Service`` vs ``Service.serving.knative.dev``), every object
of that Kind is displayed with its Group/Kind instead of its bare Kind.
The decision is made once over the whole map, never per subtree.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from kubelineage.lineage.nodemap import Node


def kind_group_table(nodes: Iterable[Node]) -> dict[str, frozenset[str]]:
    """Map every Kind to the set of Groups it appears under."""
    table: dict[str, set[str]] = {}
    for node in nodes:
        gvk = node.gvk
        table.setdefault(gvk.kind, set()).add(gvk.group)
    return {kind: frozenset(groups) for kind, groups in table.items()}


class KindDisambiguator:
    """Precomputed per-Kind decision on Group-qualified display names."""

    def __init__(self, node_map: Mapping[str, Node], force_group: bool = False) -> None:
        self.table = kind_group_table(node_map.values())
        self.force_group = force_group
        self._ambiguous = frozenset(kind for kind, groups in self.table.items() if len(groups) > 1)

    def requires_group(self, kind: str) -> bool:
        """True if *kind* must be rendered Group-qualified everywhere."""
        return self.force_group or kind in self._ambiguous
