"""Exception taxonomy for kubelineage.

Errors local to a single object, edge or column are absorbed as
diagnostics and never raised past the component that found them. Only
structural failures that stop a traversal reach the caller.
"""

from __future__ import annotations


class LineageError(Exception):
    """Base class for all kubelineage errors."""


class JSONPathError(LineageError, ValueError):
    """Raised when a field-path expression cannot be parsed."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"invalid field path {expression!r}: {reason}")
        self.expression = expression
        self.reason = reason


class RelationRuleError(LineageError):
    """Raised when a relation rule is malformed."""

    def __init__(self, rule_name: str, cause: Exception) -> None:
        super().__init__(f"relation rule '{rule_name}' is invalid: {cause}")
        self.rule_name = rule_name
        self.cause = cause


class RenderError(LineageError):
    """Raised inside the tree walk when a subtree cannot be visited."""


class CorruptNodeMapError(RenderError):
    """A dependent UID does not reference a node in the NodeMap."""

    def __init__(self, parent_uid: str, missing_uid: str) -> None:
        super().__init__(f"node {parent_uid} lists dependent {missing_uid} which is not in the node map")
        self.parent_uid = parent_uid
        self.missing_uid = missing_uid


class TraversalDepthError(RenderError):
    """The walk went deeper than the configured safety limit."""

    def __init__(self, limit: int, uid: str) -> None:
        super().__init__(f"traversal depth limit {limit} exceeded at node {uid}")
        self.limit = limit
        self.uid = uid


class TargetNotFoundError(LineageError):
    """The requested root object is not part of the fetched snapshot."""


class FetchError(LineageError):
    """The cluster could not be reached or returned an unusable response."""
