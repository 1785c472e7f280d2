"""Relationship resolver: derives owner -> dependent edges from a snapshot.

Two sources of edges:

* Intrinsic owner linkage (``metadata.ownerReferences``).
* Declarative :class:`RelationRule` descriptors evaluated against every
  object whose Group/Kind matches the rule's source. The source object is
  the dependent; whatever the rule's field path resolves to is the object
  it depends on.

Resolution is best-effort. A malformed rule is reported and skipped, an
owner that was not fetched (other namespace, RBAC) produces no edge, and
the referencing object simply becomes a display root.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from kubelineage.errors import JSONPathError, RelationRuleError
from kubelineage.lineage.jsonpath import JSONPath, compile_path, format_value
from kubelineage.models.objects import (
    OWNER_REFERENCE,
    ClusterObject,
    Diagnostic,
    DiagnosticKind,
    Edge,
    ResolutionResult,
)
from kubelineage.observability.logging import get_logger

_logger = get_logger("lineage.relations")


class MatchMode(StrEnum):
    """How the value selected by a rule's path identifies its target."""

    NAME = "name"
    UID = "uid"
    SELECTOR = "selector"  # plain label map, as in Service.spec.selector
    LABEL_SELECTOR = "label_selector"  # metav1.LabelSelector


@dataclass(frozen=True)
class RelationRule:
    """Declarative non-ownership dependency between two Group/Kinds.

    An empty ``target_kind`` matches objects of any kind (only meaningful
    with :attr:`MatchMode.UID`). ``namespaced=False`` means the target is
    cluster-scoped and is looked up without a namespace.
    """

    name: str
    source_group: str
    source_kind: str
    target_group: str
    target_kind: str
    path: str
    match: MatchMode = MatchMode.NAME
    namespaced: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RelationRule:
        """Build a rule from a JSON-style mapping. Raises RelationRuleError."""
        name = str(data.get("name", "<unnamed>"))
        try:
            return cls(
                name=name,
                source_group=str(data.get("sourceGroup", "")),
                source_kind=str(data["sourceKind"]),
                target_group=str(data.get("targetGroup", "")),
                target_kind=str(data.get("targetKind", "")),
                path=str(data["path"]),
                match=MatchMode(data.get("match", MatchMode.NAME)),
                namespaced=bool(data.get("namespaced", True)),
            )
        except (KeyError, ValueError) as exc:
            raise RelationRuleError(name, exc) from exc

    def applies_to(self, obj: ClusterObject) -> bool:
        gvk = obj.gvk
        return gvk.kind == self.source_kind and gvk.group == self.source_group

    def targets(self, obj: ClusterObject) -> bool:
        gvk = obj.gvk
        if not self.target_kind:
            return True
        return gvk.kind == self.target_kind and gvk.group == self.target_group


def _rule(
    name: str,
    source: tuple[str, str],
    target: tuple[str, str],
    path: str,
    match: MatchMode = MatchMode.NAME,
    namespaced: bool = True,
) -> RelationRule:
    return RelationRule(name, source[0], source[1], target[0], target[1], path, match, namespaced)


_POD = ("", "Pod")
_CONFIGMAP = ("", "ConfigMap")
_SECRET = ("", "Secret")
_PVC = ("", "PersistentVolumeClaim")
_RBAC = "rbac.authorization.k8s.io"

DEFAULT_RELATION_RULES: tuple[RelationRule, ...] = (
    _rule("PodConfigMapVolume", _POD, _CONFIGMAP, "{.spec.volumes[*].configMap.name}"),
    _rule("PodConfigMapProjected", _POD, _CONFIGMAP, "{.spec.volumes[*].projected.sources[*].configMap.name}"),
    _rule("PodConfigMapEnvFrom", _POD, _CONFIGMAP, "{.spec.containers[*].envFrom[*].configMapRef.name}"),
    _rule("PodConfigMapEnv", _POD, _CONFIGMAP, "{.spec.containers[*].env[*].valueFrom.configMapKeyRef.name}"),
    _rule("PodSecretVolume", _POD, _SECRET, "{.spec.volumes[*].secret.secretName}"),
    _rule("PodSecretProjected", _POD, _SECRET, "{.spec.volumes[*].projected.sources[*].secret.name}"),
    _rule("PodSecretEnvFrom", _POD, _SECRET, "{.spec.containers[*].envFrom[*].secretRef.name}"),
    _rule("PodSecretEnv", _POD, _SECRET, "{.spec.containers[*].env[*].valueFrom.secretKeyRef.name}"),
    _rule("PodImagePullSecret", _POD, _SECRET, "{.spec.imagePullSecrets[*].name}"),
    _rule("PodVolumeClaim", _POD, _PVC, "{.spec.volumes[*].persistentVolumeClaim.claimName}"),
    _rule("PodServiceAccount", _POD, ("", "ServiceAccount"), "{.spec.serviceAccountName}"),
    _rule("PodNode", _POD, ("", "Node"), "{.spec.nodeName}", namespaced=False),
    _rule("VolumeClaimVolume", _PVC, ("", "PersistentVolume"), "{.spec.volumeName}", namespaced=False),
    _rule(
        "VolumeClaimStorageClass",
        _PVC,
        ("storage.k8s.io", "StorageClass"),
        "{.spec.storageClassName}",
        namespaced=False,
    ),
    _rule(
        "VolumeStorageClass",
        ("", "PersistentVolume"),
        ("storage.k8s.io", "StorageClass"),
        "{.spec.storageClassName}",
        namespaced=False,
    ),
    _rule("ServicePod", ("", "Service"), _POD, "{.spec.selector}", MatchMode.SELECTOR),
    _rule(
        "IngressService",
        ("networking.k8s.io", "Ingress"),
        ("", "Service"),
        "{.spec.rules[*].http.paths[*].backend.service.name}",
    ),
    _rule(
        "IngressDefaultService",
        ("networking.k8s.io", "Ingress"),
        ("", "Service"),
        "{.spec.defaultBackend.service.name}",
    ),
    _rule("RoleBindingRole", (_RBAC, "RoleBinding"), (_RBAC, "Role"), '{.roleRef[?(@.kind=="Role")].name}'),
    _rule(
        "RoleBindingClusterRole",
        (_RBAC, "RoleBinding"),
        (_RBAC, "ClusterRole"),
        '{.roleRef[?(@.kind=="ClusterRole")].name}',
        namespaced=False,
    ),
    _rule(
        "ClusterRoleBindingClusterRole",
        (_RBAC, "ClusterRoleBinding"),
        (_RBAC, "ClusterRole"),
        '{.roleRef[?(@.kind=="ClusterRole")].name}',
        namespaced=False,
    ),
    _rule(
        "RoleBindingServiceAccount",
        (_RBAC, "RoleBinding"),
        ("", "ServiceAccount"),
        '{.subjects[?(@.kind=="ServiceAccount")].name}',
    ),
    _rule(
        "PodDisruptionBudgetPod",
        ("policy", "PodDisruptionBudget"),
        _POD,
        "{.spec.selector}",
        MatchMode.LABEL_SELECTOR,
    ),
    _rule(
        "NetworkPolicyPod",
        ("networking.k8s.io", "NetworkPolicy"),
        _POD,
        "{.spec.podSelector}",
        MatchMode.LABEL_SELECTOR,
    ),
    _rule(
        "HorizontalPodAutoscalerDeployment",
        ("autoscaling", "HorizontalPodAutoscaler"),
        ("apps", "Deployment"),
        '{.spec.scaleTargetRef[?(@.kind=="Deployment")].name}',
    ),
    _rule(
        "HorizontalPodAutoscalerStatefulSet",
        ("autoscaling", "HorizontalPodAutoscaler"),
        ("apps", "StatefulSet"),
        '{.spec.scaleTargetRef[?(@.kind=="StatefulSet")].name}',
    ),
    _rule("EventInvolvedObject", ("", "Event"), ("", ""), "{.involvedObject.uid}", MatchMode.UID),
    _rule("EventRegarding", ("events.k8s.io", "Event"), ("", ""), "{.regarding.uid}", MatchMode.UID),
)


def _requirement_matches(requirement: Any, labels: Mapping[str, str]) -> bool:
    if not isinstance(requirement, dict):
        raise ValueError(f"matchExpressions entry must be a map, got {type(requirement).__name__}")
    key = str(requirement.get("key", ""))
    operator = requirement.get("operator")
    raw_values = requirement.get("values") or []
    if not isinstance(raw_values, list):
        raise ValueError(f"matchExpressions values must be a list, got {type(raw_values).__name__}")
    values = [str(v) for v in raw_values]
    if operator == "In":
        return key in labels and labels[key] in values
    if operator == "NotIn":
        return key not in labels or labels[key] not in values
    if operator == "Exists":
        return key in labels
    if operator == "DoesNotExist":
        return key not in labels
    raise ValueError(f"unsupported label selector operator {operator!r}")


def selector_matches(selector: Any, labels: Mapping[str, str], mode: MatchMode) -> bool:
    """Return True if *labels* satisfy *selector*.

    A plain map selector (``SELECTOR``) that is empty selects nothing, as
    with a Service without a selector. An empty ``LABEL_SELECTOR`` selects
    everything, as with ``NetworkPolicy.spec.podSelector: {}``.
    """
    if not isinstance(selector, dict):
        return False
    if mode == MatchMode.SELECTOR:
        if not selector:
            return False
        return all(labels.get(str(k)) == format_value(v) for k, v in selector.items())

    match_labels = selector.get("matchLabels") or {}
    if not isinstance(match_labels, dict):
        raise ValueError("matchLabels must be a map")
    if any(labels.get(str(k)) != format_value(v) for k, v in match_labels.items()):
        return False
    return all(_requirement_matches(req, labels) for req in selector.get("matchExpressions") or [])


class _SnapshotIndex:
    """Lookup tables over the fetched object set."""

    def __init__(self, objects: Iterable[ClusterObject]) -> None:
        self.by_uid: dict[str, ClusterObject] = {}
        for obj in objects:
            if obj.uid:
                self.by_uid[obj.uid] = obj
        self.by_name: dict[tuple[str, str, str, str], ClusterObject] = {}
        self.by_group_kind: dict[tuple[str, str], list[ClusterObject]] = {}
        for obj in self.by_uid.values():
            gvk = obj.gvk
            self.by_name[(gvk.group, gvk.kind, obj.namespace, obj.name)] = obj
            self.by_group_kind.setdefault((gvk.group, gvk.kind), []).append(obj)

    def resolve(self, rule: RelationRule, source: ClusterObject, value: Any) -> list[ClusterObject]:
        if rule.match in (MatchMode.SELECTOR, MatchMode.LABEL_SELECTOR):
            candidates = self.by_group_kind.get((rule.target_group, rule.target_kind), [])
            return [
                obj
                for obj in candidates
                if obj.namespace == source.namespace and selector_matches(value, obj.labels, rule.match)
            ]

        key = format_value(value)
        if rule.match == MatchMode.UID:
            target = self.by_uid.get(key)
            return [target] if target is not None and rule.targets(target) else []

        namespace = source.namespace if rule.namespaced else ""
        target = self.by_name.get((rule.target_group, rule.target_kind, namespace, key))
        return [target] if target is not None else []


def _compile_rules(rules: Iterable[RelationRule], result: ResolutionResult) -> list[tuple[RelationRule, JSONPath]]:
    compiled = []
    for rule in rules:
        try:
            compiled.append((rule, compile_path(rule.path)))
        except JSONPathError as exc:
            _logger.warning("relation_rule_skipped", rule=rule.name, error=str(exc))
            result.diagnostics.append(
                Diagnostic(DiagnosticKind.EXPRESSION_ERROR, f"relation rule '{rule.name}' skipped: {exc}")
            )
    return compiled


def resolve_relationships(
    objects: Iterable[ClusterObject],
    rules: Iterable[RelationRule] = DEFAULT_RELATION_RULES,
) -> ResolutionResult:
    """Derive every owner -> dependent edge present in *objects*.

    Edges are returned in a stable order (objects in input order, owner
    references before rules) and without duplicates.
    """
    index = _SnapshotIndex(objects)
    result = ResolutionResult()
    compiled = _compile_rules(rules, result)
    seen: set[tuple[str, str, str]] = set()

    def add_edge(owner_uid: str, dependent_uid: str, relation: str) -> None:
        key = (owner_uid, dependent_uid, relation)
        if owner_uid != dependent_uid and key not in seen:
            seen.add(key)
            result.edges.append(Edge(owner_uid, dependent_uid, relation))

    for obj in index.by_uid.values():
        for ref in obj.owner_references:
            if ref.uid in index.by_uid:
                add_edge(ref.uid, obj.uid, OWNER_REFERENCE)
            else:
                result.diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.UNRESOLVED_OWNER,
                        f"owner {ref.kind}/{ref.name} ({ref.uid}) is not in the fetched set",
                        uid=obj.uid,
                    )
                )

        for rule, path in compiled:
            if not rule.applies_to(obj):
                continue
            try:
                for value in path.find(obj.content):
                    for target in index.resolve(rule, obj, value):
                        add_edge(target.uid, obj.uid, rule.name)
            except (TypeError, ValueError) as exc:
                _logger.debug("relation_rule_evaluation_failed", rule=rule.name, uid=obj.uid, error=str(exc))
                result.diagnostics.append(
                    Diagnostic(DiagnosticKind.EXPRESSION_ERROR, f"relation rule '{rule.name}': {exc}", uid=obj.uid)
                )

    _logger.debug(
        "relationships_resolved",
        objects=len(index.by_uid),
        edges=len(result.edges),
        diagnostics=len(result.diagnostics),
    )
    return result
