"""
Kubernetes store client: get/create/update/update_status over the kinds in
the Scheme.

Design principles:
  - Objects travel as plain dicts in wire format (camelCase), the same shape
    kopf hands to event handlers
  - Updates are full replaces carrying metadata.resourceVersion, so the API
    server rejects stale writes with 409 (optimistic concurrency)
  - Every ApiException is translated to the domain errors in errors.py
  - The blocking client runs in worker threads; callers await
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from kubernetes import client, config
from kubernetes.client import ApiException

from webapp_operator.config import Settings, settings as default_settings
from webapp_operator.errors import translate_api_error
from webapp_operator.scheme import DEPLOYMENTS, SERVICES, ResourceKind, Scheme

logger = logging.getLogger("kube_store")


def load_kube_config(settings: Settings = default_settings) -> None:
    """In-cluster service account first, kubeconfig as the fallback."""
    if settings.IN_CLUSTER:
        config.load_incluster_config()
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config(config_file=settings.KUBECONFIG or None)


class KubeStore:
    def __init__(self, scheme: Scheme, api_client: Optional[client.ApiClient] = None):
        self.scheme = scheme
        self.api_client = api_client or client.ApiClient()
        self.apps = client.AppsV1Api(self.api_client)
        self.core = client.CoreV1Api(self.api_client)
        self.custom = client.CustomObjectsApi(self.api_client)

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _is_custom(self, kind: ResourceKind) -> bool:
        return kind == self.scheme.webapp

    def _check_kind(self, kind: ResourceKind) -> None:
        if kind not in (self.scheme.webapp, DEPLOYMENTS, SERVICES):
            raise ValueError(f"kind {kind} is not registered in the scheme")

    # --- blocking calls (run in a thread) ---

    def _read(self, kind: ResourceKind, namespace: str, name: str) -> Any:
        if self._is_custom(kind):
            return self.custom.get_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, name
            )
        if kind == DEPLOYMENTS:
            return self.apps.read_namespaced_deployment(name=name, namespace=namespace)
        return self.core.read_namespaced_service(name=name, namespace=namespace)

    def _create(self, kind: ResourceKind, namespace: str, body: Dict[str, Any]) -> Any:
        if self._is_custom(kind):
            return self.custom.create_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, body
            )
        if kind == DEPLOYMENTS:
            return self.apps.create_namespaced_deployment(namespace=namespace, body=body)
        return self.core.create_namespaced_service(namespace=namespace, body=body)

    def _replace(self, kind: ResourceKind, namespace: str, name: str, body: Dict[str, Any]) -> Any:
        if self._is_custom(kind):
            return self.custom.replace_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, name, body
            )
        if kind == DEPLOYMENTS:
            return self.apps.replace_namespaced_deployment(name=name, namespace=namespace, body=body)
        return self.core.replace_namespaced_service(name=name, namespace=namespace, body=body)

    def _replace_status(self, kind: ResourceKind, namespace: str, name: str, body: Dict[str, Any]) -> Any:
        if not self._is_custom(kind):
            raise ValueError(f"status updates are only issued for {self.scheme.webapp}")
        return self.custom.replace_namespaced_custom_object_status(
            kind.group, kind.version, namespace, kind.plural, name, body
        )

    async def _call(self, what: str, fn, *args) -> Dict[str, Any]:
        try:
            result = await asyncio.to_thread(fn, *args)
        except ApiException as e:
            raise translate_api_error(e, what) from e
        return self._to_dict(result)

    # --- public API ---

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        """Fetch one object. Raises NotFound if absent."""
        self._check_kind(kind)
        return await self._call(f"get {kind} {namespace}/{name}", self._read, kind, namespace, name)

    async def create(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object. Raises AlreadyExists if the name is taken."""
        self._check_kind(kind)
        meta = body["metadata"]
        logger.debug(f"create {kind} {meta['namespace']}/{meta['name']}")
        return await self._call(
            f"create {kind} {meta['namespace']}/{meta['name']}",
            self._create, kind, meta["namespace"], body,
        )

    async def update(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an object's spec. Raises Conflict on a stale resourceVersion."""
        self._check_kind(kind)
        meta = body["metadata"]
        return await self._call(
            f"update {kind} {meta['namespace']}/{meta['name']}",
            self._replace, kind, meta["namespace"], meta["name"], body,
        )

    async def update_status(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the status subresource. Raises Conflict on a stale resourceVersion."""
        self._check_kind(kind)
        meta = body["metadata"]
        return await self._call(
            f"update status of {kind} {meta['namespace']}/{meta['name']}",
            self._replace_status, kind, meta["namespace"], meta["name"], body,
        )
