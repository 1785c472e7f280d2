"""Integration tests for the ``kubelineage`` command line."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from kubelineage.cli import cli
from kubelineage.errors import FetchError

pytestmark = pytest.mark.integration


def _invoke(*args: str, env: dict[str, str] | None = None) -> Any:
    return CliRunner().invoke(cli, [*args, "--log-level", "error"], env=env)


def _names(stdout: str) -> list[str]:
    """NAME column of table output (the tree prefix included)."""
    header, *lines = stdout.splitlines()
    width = header.index("STATUS")
    return [line[:width].rstrip() for line in lines]


class TestTableOutput:
    def test_deployment_tree(self, snapshot_file: Path) -> None:
        result = _invoke("deploy/web", "-f", str(snapshot_file))

        assert result.exit_code == 0, result.stderr
        assert result.stdout.splitlines()[0].split() == ["NAME", "STATUS", "REASON", "AGE"]
        assert _names(result.stdout) == [
            "Deployment/web",
            "├── ReplicaSet/web-5d78c9869d",
            "│   ├── Pod/web-5d78c9869d-2x7lq",
            "│   │   └── Service/web",
            "│   │       └── Ingress/web",
            "│   └── Pod/web-5d78c9869d-9kq4m",
            "└── HorizontalPodAutoscaler/web",
        ]

    def test_kind_and_name_as_two_arguments(self, snapshot_file: Path) -> None:
        result = _invoke("configmap", "web-config", "-f", str(snapshot_file))

        assert result.exit_code == 0
        assert _names(result.stdout)[0] == "ConfigMap/web-config"

    def test_depth_and_no_headers(self, snapshot_file: Path) -> None:
        result = _invoke("deploy/web", "-f", str(snapshot_file), "-d", "1", "--no-headers")

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert [line.split()[0] for line in lines] == ["Deployment/web", "├──", "└──"]

    def test_show_group_flag(self, snapshot_file: Path) -> None:
        result = _invoke("deploy/web", "-f", str(snapshot_file), "--show-group", "-d", "1")

        assert _names(result.stdout) == [
            "Deployment.apps/web",
            "├── ReplicaSet.apps/web-5d78c9869d",
            "└── HorizontalPodAutoscaler.autoscaling/web",
        ]

    def test_show_group_from_environment(self, snapshot_file: Path) -> None:
        result = _invoke("deploy/web", "-f", str(snapshot_file), "-d", "0", env={"KUBELINEAGE_SHOW_GROUP": "true"})

        assert _names(result.stdout)[0] == "Deployment.apps/web"

    def test_extra_relation_rules(self, tmp_path: Path, snapshot: list[dict[str, Any]]) -> None:
        for obj in snapshot:
            if obj["kind"] == "ConfigMap":
                obj["metadata"]["annotations"] = {"lineage/owner": "web"}
        snapshot_path = tmp_path / "annotated.json"
        snapshot_path.write_text(json.dumps({"kind": "List", "items": snapshot}), encoding="utf-8")
        rules_path = tmp_path / "rules.json"
        rules_path.write_text(
            json.dumps(
                [
                    {
                        "name": "ConfigMapOwnerAnnotation",
                        "sourceKind": "ConfigMap",
                        "targetGroup": "apps",
                        "targetKind": "Deployment",
                        "path": "{.metadata.annotations['lineage/owner']}",
                    }
                ]
            ),
            encoding="utf-8",
        )

        result = _invoke("deploy/web", "-f", str(snapshot_path), "--relation-rules", str(rules_path), "-d", "1")

        assert result.exit_code == 0, result.stderr
        assert _names(result.stdout) == [
            "Deployment/web",
            "├── ConfigMap/web-config",
            "├── ReplicaSet/web-5d78c9869d",
            "└── HorizontalPodAutoscaler/web",
        ]


class TestJsonOutput:
    def test_table_document(self, snapshot_file: Path) -> None:
        result = _invoke("svc.serving.knative.dev/web", "-f", str(snapshot_file), "-o", "json")

        assert result.exit_code == 0
        document = json.loads(result.stdout)
        assert document["kind"] == "Table"
        assert [row["cells"][0] for row in document["rows"]] == [
            "Service.serving.knative.dev/web",
            "└── Route/web",
        ]
        assert document["rows"][1]["object"]["metadata"]["uid"] == "route-web"


class TestFailures:
    def test_target_not_found(self, snapshot_file: Path) -> None:
        result = _invoke("deploy/api", "-f", str(snapshot_file))

        assert result.exit_code == 2
        assert "not found" in result.stderr
        assert result.stdout == ""

    def test_ambiguous_target(self, snapshot_file: Path) -> None:
        result = _invoke("svc/web", "-f", str(snapshot_file))

        assert result.exit_code == 2
        assert "ambiguous" in result.stderr

    def test_unreadable_snapshot(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")

        result = _invoke("deploy/web", "-f", str(path))

        assert result.exit_code == 1
        assert "could not read snapshot" in result.stderr

    def test_invalid_relation_rules(self, snapshot_file: Path, tmp_path: Path) -> None:
        rules_path = tmp_path / "rules.json"
        rules_path.write_text(json.dumps([{"name": "broken", "path": "{.spec}"}]), encoding="utf-8")

        result = _invoke("deploy/web", "-f", str(snapshot_file), "--relation-rules", str(rules_path))

        assert result.exit_code == 2
        assert "broken" in result.stderr

    def test_invalid_environment(self, snapshot_file: Path) -> None:
        result = _invoke("deploy/web", "-f", str(snapshot_file), env={"KUBELINEAGE_FETCH_CONCURRENCY": "many"})

        assert result.exit_code == 2
        assert "KUBELINEAGE_FETCH_CONCURRENCY" in result.stderr

    def test_render_error_keeps_partial_output(self, tmp_path: Path) -> None:
        chain = []
        for i in range(12):
            metadata: dict[str, Any] = {"name": f"link-{i:02d}", "namespace": "default", "uid": f"u{i:02d}"}
            if i:
                metadata["ownerReferences"] = [{"uid": f"u{i - 1:02d}"}]
            chain.append({"apiVersion": "v1", "kind": "ConfigMap", "metadata": metadata})
        path = tmp_path / "chain.json"
        path.write_text(json.dumps(chain), encoding="utf-8")

        result = _invoke("cm/link-00", "-f", str(path), env={"KUBELINEAGE_MAX_TRAVERSAL_DEPTH": "8"})

        assert result.exit_code == 1
        assert len(result.stdout.splitlines()) == 1 + 9
        assert "traversal depth limit 8" in result.stderr


class TestClusterFetch:
    def test_fetches_requested_namespace(
        self, monkeypatch: pytest.MonkeyPatch, snapshot: list[dict[str, Any]]
    ) -> None:
        calls: list[tuple[Any, ...]] = []

        async def fake_fetch(namespace: str | None, context: str | None, config: Any) -> list[dict[str, Any]]:
            calls.append((namespace, context))
            return snapshot

        monkeypatch.setattr("kubelineage.cli.main.fetch_snapshot", fake_fetch)

        result = _invoke("deploy/web", "--context", "kind-dev", "-d", "0")

        assert result.exit_code == 0, result.stderr
        assert calls == [("default", "kind-dev")]

    def test_all_namespaces(self, monkeypatch: pytest.MonkeyPatch, snapshot: list[dict[str, Any]]) -> None:
        calls: list[str | None] = []

        async def fake_fetch(namespace: str | None, context: str | None, config: Any) -> list[dict[str, Any]]:
            calls.append(namespace)
            return snapshot

        monkeypatch.setattr("kubelineage.cli.main.fetch_snapshot", fake_fetch)

        result = _invoke("deploy/web", "-A")

        assert result.exit_code == 0
        assert calls == [None]

    def test_fetch_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def fake_fetch(namespace: str | None, context: str | None, config: Any) -> list[dict[str, Any]]:
            raise FetchError("API discovery failed: connection refused")

        monkeypatch.setattr("kubelineage.cli.main.fetch_snapshot", fake_fetch)

        result = _invoke("deploy/web")

        assert result.exit_code == 1
        assert "connection refused" in result.stderr
