"""
Cluster inventory interfaces and in-memory implementations

The evaluators only depend on the two Protocols below. InventorySnapshot
and StaticVersionProvider serve them from data already collected (YAML
dumps or kubernetes client model objects); nothing here talks to an API
server.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import yaml
from kubernetes import client

from ..errors import InventoryError
from ..models import ClusterRef, Resource
from ..utils.logger import get_logger

logger = get_logger("Inventory")

_api_client: Optional[client.ApiClient] = None


class ResourceInventoryProvider(Protocol):
    """Lists the resources currently present in a cluster"""

    def list_resources(
        self,
        cluster: ClusterRef,
        group: str,
        version: str,
        kind: str,
        namespace: str = ""
    ) -> List[Resource]:
        ...


class ClusterVersionProvider(Protocol):
    """Returns the platform version a cluster reports (e.g. "v1.27.3")"""

    def get_version(self, cluster: ClusterRef) -> str:
        ...


def from_kubernetes_object(obj: Any) -> Resource:
    """
    Convert a kubernetes client object into a Resource

    Args:
        obj: A kubernetes model (V1Deployment, V1Pod, ...) or a plain
             manifest dict

    Returns:
        Resource carrying the serialized object for field lookups
    """
    global _api_client

    if isinstance(obj, Mapping):
        return Resource.from_dict(obj)

    if _api_client is None:
        _api_client = client.ApiClient()

    # camelCase dict, None values dropped, datetimes as strings
    data = _api_client.sanitize_for_serialization(obj)
    if not data.get("apiVersion") or not data.get("kind"):
        raise InventoryError(
            f"{type(obj).__name__} has no apiVersion/kind set; cannot place it in the inventory"
        )
    return Resource.from_dict(data)


class InventorySnapshot:
    """
    Point-in-time resources of a set of clusters

    Implements ResourceInventoryProvider.
    """

    def __init__(self, resources: Optional[Mapping[str, Iterable[Any]]] = None):
        """
        Initialize the snapshot

        Args:
            resources: Dict mapping ClusterRef.key ("capi:namespace--name") to
                       Resources, manifest dicts or kubernetes objects
        """
        self._resources: Dict[str, List[Resource]] = {}
        for cluster_key, items in (resources or {}).items():
            for item in items:
                self.add(cluster_key, item)

    def add(self, cluster_key: str, item: Any):
        """Add one resource to a cluster's inventory"""
        resource = item if isinstance(item, Resource) else from_kubernetes_object(item)
        self._resources.setdefault(cluster_key, []).append(resource)

    def list_resources(
        self,
        cluster: ClusterRef,
        group: str,
        version: str,
        kind: str,
        namespace: str = ""
    ) -> List[Resource]:
        """Resources of one group/version/kind in a namespace (empty: cluster scoped)"""
        return [
            r for r in self._resources.get(cluster.key, [])
            if r.group == group and r.version == version and r.kind == kind
            and r.namespace == namespace
        ]

    def all_resources(self, cluster: ClusterRef) -> List[Resource]:
        return list(self._resources.get(cluster.key, []))

    def clusters(self) -> List[str]:
        return sorted(self._resources)

    @classmethod
    def from_yaml(cls, documents: Mapping[str, str]) -> "InventorySnapshot":
        """
        Build a snapshot from YAML text per cluster

        Each text may hold several documents; documents of kind "List"
        (kubectl get -o yaml) are expanded into their items.

        Args:
            documents: Dict mapping cluster key to YAML text

        Returns:
            InventorySnapshot
        """
        snapshot = cls()
        for cluster_key, text in documents.items():
            count = 0
            for doc in yaml.safe_load_all(text):
                if not doc:
                    continue
                if doc.get("kind") == "List":
                    items = doc.get("items") or []
                else:
                    items = [doc]
                for item in items:
                    snapshot.add(cluster_key, item)
                    count += 1
            logger.debug(f"Loaded {count} resources for {cluster_key}")
        return snapshot

    @classmethod
    def from_yaml_files(cls, paths: Mapping[str, str]) -> "InventorySnapshot":
        """Same as from_yaml, reading the YAML from files"""
        documents = {}
        for cluster_key, path in paths.items():
            with open(path, 'r', encoding='utf-8') as f:
                documents[cluster_key] = f.read()
        return cls.from_yaml(documents)


class StaticVersionProvider:
    """
    Cluster versions known up front

    Implements ClusterVersionProvider.
    """

    def __init__(self, versions: Optional[Mapping[str, str]] = None):
        self.versions: Dict[str, str] = dict(versions or {})

    def get_version(self, cluster: ClusterRef) -> str:
        try:
            return self.versions[cluster.key]
        except KeyError:
            raise InventoryError(f"no version reported for cluster {cluster.key}") from None
