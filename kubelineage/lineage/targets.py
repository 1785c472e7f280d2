"""Resolve a user-supplied ``KIND[.GROUP]/NAME`` reference to a node."""

from __future__ import annotations

from kubelineage.errors import TargetNotFoundError
from kubelineage.lineage.nodemap import Node, NodeMap

KIND_ALIASES: dict[str, str] = {
    "po": "Pod",
    "pod": "Pod",
    "pods": "Pod",
    "deploy": "Deployment",
    "deployment": "Deployment",
    "deployments": "Deployment",
    "rs": "ReplicaSet",
    "replicaset": "ReplicaSet",
    "replicasets": "ReplicaSet",
    "sts": "StatefulSet",
    "statefulset": "StatefulSet",
    "statefulsets": "StatefulSet",
    "ds": "DaemonSet",
    "daemonset": "DaemonSet",
    "daemonsets": "DaemonSet",
    "job": "Job",
    "jobs": "Job",
    "cj": "CronJob",
    "cronjob": "CronJob",
    "cronjobs": "CronJob",
    "svc": "Service",
    "service": "Service",
    "services": "Service",
    "ep": "Endpoints",
    "endpoints": "Endpoints",
    "ing": "Ingress",
    "ingress": "Ingress",
    "ingresses": "Ingress",
    "cm": "ConfigMap",
    "configmap": "ConfigMap",
    "configmaps": "ConfigMap",
    "secret": "Secret",
    "secrets": "Secret",
    "sa": "ServiceAccount",
    "serviceaccount": "ServiceAccount",
    "serviceaccounts": "ServiceAccount",
    "pvc": "PersistentVolumeClaim",
    "persistentvolumeclaim": "PersistentVolumeClaim",
    "persistentvolumeclaims": "PersistentVolumeClaim",
    "pv": "PersistentVolume",
    "persistentvolume": "PersistentVolume",
    "persistentvolumes": "PersistentVolume",
    "sc": "StorageClass",
    "storageclass": "StorageClass",
    "storageclasses": "StorageClass",
    "no": "Node",
    "node": "Node",
    "nodes": "Node",
    "ns": "Namespace",
    "namespace": "Namespace",
    "namespaces": "Namespace",
    "hpa": "HorizontalPodAutoscaler",
    "horizontalpodautoscaler": "HorizontalPodAutoscaler",
    "pdb": "PodDisruptionBudget",
    "poddisruptionbudget": "PodDisruptionBudget",
    "netpol": "NetworkPolicy",
    "networkpolicy": "NetworkPolicy",
}


def parse_reference(resource: str, name: str | None = None) -> tuple[str, str | None, str]:
    """Split ``KIND[.GROUP]/NAME`` (or ``KIND[.GROUP]`` plus *name*).

    Returns ``(kind, group, name)``; *group* is None when not given.

    Raises:
        TargetNotFoundError: if the reference is malformed.
    """
    if name is None:
        if resource.count("/") != 1:
            raise TargetNotFoundError(f"expected KIND/NAME or KIND NAME, got {resource!r}")
        resource, name = resource.split("/")
    if not resource or not name:
        raise TargetNotFoundError("kind and name must not be empty")
    kind, _, group = resource.partition(".")
    return kind, (group or None), name


def _kind_matches(node: Node, kind: str) -> bool:
    wanted = kind.lower()
    actual = node.gvk.kind.lower()
    alias = KIND_ALIASES.get(wanted)
    return actual in (wanted, wanted.removesuffix("s"), wanted.removesuffix("es")) or (
        alias is not None and alias.lower() == actual
    )


def resolve_target(node_map: NodeMap, resource: str, name: str | None = None, namespace: str = "") -> Node:
    """Find the node a CLI reference names.

    Namespaced objects are looked up in *namespace*; a cluster-scoped object
    (empty namespace) matches regardless of the requested namespace.

    Raises:
        TargetNotFoundError: when nothing or more than one object matches.
    """
    kind, group, obj_name = parse_reference(resource, name)
    matches = [
        node
        for node in node_map.values()
        if node.object.name == obj_name
        and node.object.namespace in (namespace, "")
        and _kind_matches(node, kind)
        and (group is None or node.gvk.group == group)
    ]
    # Prefer the namespaced match when both exist.
    namespaced = [node for node in matches if node.object.namespace == namespace]
    matches = namespaced or matches
    if not matches:
        raise TargetNotFoundError(f"{resource if name is None else f'{resource}/{name}'} not found")
    if len({node.gvk.group for node in matches}) > 1:
        groups = sorted(node.gvk.group_kind for node in matches)
        raise TargetNotFoundError(f"{kind}/{obj_name} is ambiguous, qualify it with a group: {groups}")
    return sorted(matches, key=lambda node: node.object.sort_key)[0]
