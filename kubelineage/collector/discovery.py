"""Cluster discovery and listing using kubernetes-asyncio.

Discovers every listable API resource (core ``/api/v1`` plus the preferred
version of each group under ``/apis``) and lists them concurrently, bounded
by a semaphore. Resources the caller may not list (RBAC), that vanish
mid-fetch or whose request times out are logged and skipped, so lineage is
partial rather than absent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from kubelineage.errors import FetchError
from kubelineage.models.config import FetchConfig
from kubelineage.observability.logging import get_logger

_logger = get_logger("collector.discovery")

_PAGE_SIZE = 500


@dataclass(frozen=True)
class APIResource:
    """A listable resource type reported by API discovery."""

    group: str
    version: str
    kind: str
    plural: str
    namespaced: bool

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def list_path(self, namespace: str | None = None) -> str:
        """Collection path; cluster-wide when *namespace* is None or the resource is cluster-scoped."""
        base = f"/apis/{self.group}/{self.version}" if self.group else f"/api/{self.version}"
        if self.namespaced and namespace:
            return f"{base}/namespaces/{namespace}/{self.plural}"
        return f"{base}/{self.plural}"


def parse_api_resource_list(group_version: str, document: dict[str, Any]) -> list[APIResource]:
    """Listable top-level resources from an APIResourceList document."""
    group, _, version = group_version.rpartition("/")
    resources = []
    for entry in document.get("resources") or []:
        name = str(entry.get("name", ""))
        if not name or "/" in name or "list" not in (entry.get("verbs") or []):
            continue
        resources.append(
            APIResource(
                group=str(entry.get("group") or group),
                version=str(entry.get("version") or version),
                kind=str(entry.get("kind", "")),
                plural=name,
                namespaced=bool(entry.get("namespaced", False)),
            )
        )
    return resources


class ClusterFetcher:
    """Lists every discoverable object through one ``ApiClient``."""

    def __init__(self, api_client: Any, concurrency: int = 8, request_timeout: int = 30) -> None:
        self._api = api_client
        self._semaphore = asyncio.Semaphore(concurrency)
        self._timeout = request_timeout

    async def _get_json(self, path: str, query: list[tuple[str, Any]] | None = None) -> dict[str, Any]:
        """GET *path* and return the decoded JSON body."""
        return await self._api.call_api(
            path,
            "GET",
            query_params=query or [],
            header_params={"Accept": "application/json"},
            response_types_map={200: "object"},
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
            _request_timeout=self._timeout,
        )

    async def _discover_group(self, group_version: str) -> list[APIResource]:
        from aiohttp import ClientError
        from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

        async with self._semaphore:
            try:
                document = await self._get_json(f"/apis/{group_version}")
            except ApiException as exc:
                # Aggregated APIs whose backend is down answer 503 here.
                _logger.warning("api_group_discovery_failed", group_version=group_version, status=exc.status)
                return []
            except (asyncio.TimeoutError, ClientError) as exc:
                _logger.warning("api_group_discovery_failed", group_version=group_version, error=repr(exc))
                return []
        return parse_api_resource_list(group_version, document)

    async def discover(self) -> list[APIResource]:
        """Every listable resource: core v1 first, then groups in server order."""
        from aiohttp import ClientError
        from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

        try:
            core = await self._get_json("/api/v1")
            groups = await self._get_json("/apis")
        except (ApiException, OSError, asyncio.TimeoutError, ClientError) as exc:
            raise FetchError(f"API discovery failed: {str(exc) or type(exc).__name__}") from exc

        group_versions = [
            str(group["preferredVersion"]["groupVersion"])
            for group in groups.get("groups") or []
            if isinstance(group.get("preferredVersion"), dict) and group["preferredVersion"].get("groupVersion")
        ]
        discovered = await asyncio.gather(*(self._discover_group(gv) for gv in group_versions))

        resources = parse_api_resource_list("v1", core)
        for group_resources in discovered:
            resources.extend(group_resources)
        _logger.debug("api_resources_discovered", count=len(resources), groups=len(group_versions))
        return resources

    async def _list(self, resource: APIResource, namespace: str | None) -> list[dict[str, Any]]:
        from aiohttp import ClientError
        from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

        path = resource.list_path(namespace)
        items: list[dict[str, Any]] = []
        token = ""
        async with self._semaphore:
            while True:
                query: list[tuple[str, Any]] = [("limit", _PAGE_SIZE)]
                if token:
                    query.append(("continue", token))
                try:
                    document = await self._get_json(path, query)
                except ApiException as exc:
                    if exc.status in (403, 404, 405):
                        _logger.info("resource_list_skipped", path=path, status=exc.status)
                    else:
                        _logger.warning("resource_list_failed", path=path, status=exc.status, error=str(exc))
                    return []
                except (asyncio.TimeoutError, ClientError) as exc:
                    _logger.warning("resource_list_failed", path=path, error=repr(exc))
                    return []
                for item in document.get("items") or []:
                    if isinstance(item, dict):
                        item.setdefault("apiVersion", resource.api_version)
                        item.setdefault("kind", resource.kind)
                        items.append(item)
                token = str((document.get("metadata") or {}).get("continue") or "")
                if not token:
                    break
        return items

    async def fetch(self, namespace: str | None = None) -> list[dict[str, Any]]:
        """List every object: namespaced ones in *namespace* (all when None), plus cluster-scoped ones."""
        resources = await self.discover()
        batches = await asyncio.gather(*(self._list(resource, namespace) for resource in resources))
        objects = [item for batch in batches for item in batch]
        _logger.info(
            "snapshot_fetched",
            namespace=namespace or "<all>",
            resources=len(resources),
            objects=len(objects),
        )
        return objects


async def load_client_config(context: str | None = None) -> None:
    """Configure kubernetes-asyncio from in-cluster config or kubeconfig."""
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    if context is None:
        try:
            k8s_config.load_incluster_config()
            _logger.debug("k8s client configured from in-cluster service account")
            return
        except k8s_config.ConfigException:
            pass
    try:
        await k8s_config.load_kube_config(context=context)
    except (k8s_config.ConfigException, OSError) as exc:
        raise FetchError(f"could not load kubeconfig: {exc}") from exc
    _logger.debug("k8s client configured from kubeconfig", context=context)


async def fetch_snapshot(
    namespace: str | None = None,
    context: str | None = None,
    config: FetchConfig | None = None,
) -> list[dict[str, Any]]:
    """Fetch a complete snapshot of the cluster for lineage resolution."""
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

    config = config or FetchConfig()
    await load_client_config(context)
    async with k8s_client.ApiClient() as api:
        fetcher = ClusterFetcher(api, concurrency=config.concurrency, request_timeout=config.request_timeout)
        return await fetcher.fetch(namespace)
