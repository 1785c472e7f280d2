"""Collector package for kubelineage.

Fetches a complete snapshot of cluster objects for the lineage engine.
The engine never sees partial state: it is handed the finished list.

Submodules
----------
discovery -- APIResource discovery and concurrent listing via kubernetes-asyncio.
snapshot  -- Loading a snapshot from a ``kubectl get -o json`` document.
"""

from kubelineage.collector.discovery import APIResource, ClusterFetcher, fetch_snapshot
from kubelineage.collector.snapshot import load_snapshot, parse_snapshot

__all__ = ["APIResource", "ClusterFetcher", "fetch_snapshot", "load_snapshot", "parse_snapshot"]
