"""Shared fixtures for kubelineage integration tests.

Provides a realistic snapshot of one namespace (a Deployment with its
ReplicaSet and Pods, the Service and Ingress in front of them, their
ConfigMap, an HPA and a Knative Service sharing the ``Service`` kind) so
integration tests can exercise the full pipeline without a cluster.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

_NOW = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)


def _ts(age: timedelta) -> str:
    return (_NOW - age).strftime("%Y-%m-%dT%H:%M:%SZ")


def make_object(
    kind: str,
    name: str,
    uid: str,
    api_version: str = "v1",
    namespace: str = "default",
    owner: tuple[str, str, str] | None = None,
    labels: dict[str, str] | None = None,
    age: timedelta = timedelta(hours=2),
    ready: str | None = None,
    ready_reason: str = "",
    **fields: Any,
) -> dict[str, Any]:
    """Create a raw object document the way the API server returns it."""
    metadata: dict[str, Any] = {"name": name, "uid": uid, "creationTimestamp": _ts(age)}
    if namespace:
        metadata["namespace"] = namespace
    if labels:
        metadata["labels"] = labels
    if owner is not None:
        owner_kind, owner_name, owner_uid = owner
        metadata["ownerReferences"] = [
            {"kind": owner_kind, "name": owner_name, "uid": owner_uid, "controller": True}
        ]
    content: dict[str, Any] = {"apiVersion": api_version, "kind": kind, "metadata": metadata, **fields}
    if ready is not None:
        reason = ready_reason or ("PodReady" if ready == "True" else "ContainersNotReady")
        content["status"] = {"conditions": [{"type": "Ready", "status": ready, "reason": reason}]}
    return content


def _pod(name: str, uid: str, ready: str) -> dict[str, Any]:
    return make_object(
        "Pod",
        name,
        uid,
        owner=("ReplicaSet", "web-5d78c9869d", "rs-web"),
        labels={"app": "web", "pod-template-hash": "5d78c9869d"},
        age=timedelta(minutes=90),
        ready=ready,
        spec={
            "nodeName": "worker-1",
            "serviceAccountName": "web",
            "containers": [{"name": "web", "image": "nginx:1.27"}],
            "volumes": [{"name": "config", "configMap": {"name": "web-config"}}],
        },
    )


@pytest.fixture
def now() -> datetime:
    return _NOW


@pytest.fixture
def snapshot() -> list[dict[str, Any]]:
    return [
        make_object("Deployment", "web", "deploy-web", "apps/v1", labels={"app": "web"}, age=timedelta(days=3)),
        make_object(
            "ReplicaSet",
            "web-5d78c9869d",
            "rs-web",
            "apps/v1",
            owner=("Deployment", "web", "deploy-web"),
            age=timedelta(minutes=90),
        ),
        _pod("web-5d78c9869d-2x7lq", "pod-a", "True"),
        _pod("web-5d78c9869d-9kq4m", "pod-b", "False"),
        make_object("ConfigMap", "web-config", "cm-web", data={"nginx.conf": "events {}"}),
        make_object("ServiceAccount", "web", "sa-web"),
        make_object(
            "Node",
            "worker-1",
            "node-1",
            namespace="",
            age=timedelta(days=40),
            ready="True",
            ready_reason="KubeletReady",
        ),
        make_object("Service", "web", "svc-web", spec={"selector": {"app": "web"}, "ports": [{"port": 80}]}),
        make_object(
            "Ingress",
            "web",
            "ing-web",
            "networking.k8s.io/v1",
            spec={"rules": [{"http": {"paths": [{"path": "/", "backend": {"service": {"name": "web"}}}]}}]},
        ),
        make_object(
            "HorizontalPodAutoscaler",
            "web",
            "hpa-web",
            "autoscaling/v2",
            spec={"scaleTargetRef": {"apiVersion": "apps/v1", "kind": "Deployment", "name": "web"}},
        ),
        make_object("Service", "web", "ksvc-web", "serving.knative.dev/v1", ready="True"),
        make_object(
            "Route",
            "web",
            "route-web",
            "serving.knative.dev/v1",
            owner=("Service", "web", "ksvc-web"),
            ready="True",
        ),
    ]


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot: list[dict[str, Any]]) -> Path:
    """The snapshot written as a ``kubectl get -o json`` List document."""
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"apiVersion": "v1", "kind": "List", "items": snapshot}), encoding="utf-8")
    return path
