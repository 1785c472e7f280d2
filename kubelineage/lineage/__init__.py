"""Lineage graph resolution and rendering engine.

Data flow: fetched objects + relation rules -> resolve_relationships ->
edges -> build_node_map -> NodeMap -> TreePrinter -> DisplayRow list.
"""

from kubelineage.lineage.columns import (
    CELL_UNKNOWN,
    CELL_UNSET,
    OBJECT_COLUMN_DEFINITIONS,
    get_object_columns,
    human_duration,
)
from kubelineage.lineage.disambiguation import KindDisambiguator, kind_group_table
from kubelineage.lineage.jsonpath import JSONPath, compile_path, get_nested_string
from kubelineage.lineage.nodemap import Node, NodeMap, build_lineage, build_node_map
from kubelineage.lineage.printer import TreePrinter, format_json, format_table, print_node_map
from kubelineage.lineage.relations import (
    DEFAULT_RELATION_RULES,
    MatchMode,
    RelationRule,
    resolve_relationships,
)

__all__ = [
    "CELL_UNKNOWN",
    "CELL_UNSET",
    "DEFAULT_RELATION_RULES",
    "JSONPath",
    "KindDisambiguator",
    "MatchMode",
    "Node",
    "NodeMap",
    "OBJECT_COLUMN_DEFINITIONS",
    "RelationRule",
    "TreePrinter",
    "build_lineage",
    "build_node_map",
    "compile_path",
    "format_json",
    "format_table",
    "get_nested_string",
    "get_object_columns",
    "human_duration",
    "kind_group_table",
    "print_node_map",
    "resolve_relationships",
]
