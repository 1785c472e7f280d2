"""Load a snapshot from a ``kubectl get -o json`` document."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from kubelineage.errors import FetchError


def parse_snapshot(document: Any) -> list[dict[str, Any]]:
    """Flatten a List, an array or a single object into a list of objects.

    Nested Lists (``kubectl get all -o json`` style) are flattened too.
    """
    if isinstance(document, list):
        items = document
    elif isinstance(document, dict) and isinstance(document.get("items"), list):
        items = document["items"]
    elif isinstance(document, dict):
        return [document]
    else:
        raise FetchError(f"snapshot must be a JSON object or array, got {type(document).__name__}")

    objects: list[dict[str, Any]] = []
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("items"), list):
            objects.extend(parse_snapshot(item))
        elif isinstance(item, dict):
            objects.append(item)
    return objects


def load_snapshot(path: str | Path) -> list[dict[str, Any]]:
    """Read and parse a snapshot file."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise FetchError(f"could not read snapshot {path}: {exc}") from exc
    return parse_snapshot(document)
