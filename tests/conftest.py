"""Shared fixtures: an in-memory store and WebApp bodies."""

import copy
import itertools
from typing import Any, Dict, List, Optional, Tuple

import pytest

from webapp_operator.config import Settings
from webapp_operator.errors import AlreadyExists, Conflict, NotFound
from webapp_operator.scheme import ResourceKind, Scheme, build_scheme


class FakeStore:
    """
    In-memory stand-in for KubeStore.
    Enforces resourceVersion on updates, records every write,
    and can be told to fail the next call of a given operation.
    """

    def __init__(self):
        self.objects: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.writes: List[Tuple[str, str, str]] = []
        self.failures: Dict[str, List[Exception]] = {}
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    def fail_next(self, op: str, exc: Exception) -> None:
        self.failures.setdefault(op, []).append(exc)

    def _maybe_fail(self, op: str) -> None:
        pending = self.failures.get(op)
        if pending:
            raise pending.pop(0)

    @staticmethod
    def _key(kind: ResourceKind, namespace: str, name: str) -> Tuple[str, str, str]:
        return (kind.kind, namespace, name)

    def put(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        """Seed or overwrite an object directly, bypassing write tracking."""
        body = copy.deepcopy(body)
        meta = body.setdefault("metadata", {})
        meta.setdefault("uid", f"uid-{next(self._uids)}")
        meta["resourceVersion"] = str(next(self._versions))
        self.objects[self._key(kind, meta["namespace"], meta["name"])] = body
        return copy.deepcopy(body)

    def peek(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        obj = self.objects.get(self._key(kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        self.objects.pop(self._key(kind, namespace, name), None)

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        self._maybe_fail("get")
        obj = self.objects.get(self._key(kind, namespace, name))
        if obj is None:
            raise NotFound(f"{kind} {namespace}/{name} not found", status=404)
        return copy.deepcopy(obj)

    async def create(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        self._maybe_fail("create")
        meta = body["metadata"]
        key = self._key(kind, meta["namespace"], meta["name"])
        if key in self.objects:
            raise AlreadyExists(f"{kind} {meta['name']} already exists", status=409)
        self.writes.append(("create", kind.kind, meta["name"]))
        return self.put(kind, body)

    def _check_version(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        meta = body["metadata"]
        current = self.objects.get(self._key(kind, meta["namespace"], meta["name"]))
        if current is None:
            raise NotFound(f"{kind} {meta['name']} not found", status=404)
        if current["metadata"]["resourceVersion"] != meta.get("resourceVersion"):
            raise Conflict(f"{kind} {meta['name']} was modified", status=409)
        return current

    async def update(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        self._maybe_fail("update")
        current = self._check_version(kind, body)
        updated = copy.deepcopy(body)
        if "status" in current:
            updated["status"] = current["status"]
        self.writes.append(("update", kind.kind, body["metadata"]["name"]))
        return self.put(kind, updated)

    async def update_status(self, kind: ResourceKind, body: Dict[str, Any]) -> Dict[str, Any]:
        self._maybe_fail("update_status")
        current = copy.deepcopy(self._check_version(kind, body))
        current["status"] = copy.deepcopy(body.get("status", {}))
        self.writes.append(("update_status", kind.kind, body["metadata"]["name"]))
        return self.put(kind, current)


def make_webapp(
    name: str = "nginx-app",
    namespace: str = "default",
    image: str = "nginx:1.25",
    replicas: int = 3,
    port: Optional[int] = 80,
    env: Optional[List[Dict[str, str]]] = None,
    uid: str = "webapp-uid-1",
) -> Dict[str, Any]:
    spec: Dict[str, Any] = {"image": image, "replicas": replicas}
    if port is not None:
        spec["port"] = port
    if env is not None:
        spec["env"] = env
    return {
        "apiVersion": "example.com/v1",
        "kind": "WebApp",
        "metadata": {"name": name, "namespace": namespace, "uid": uid},
        "spec": spec,
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        CRD_GROUP="example.com",
        CRD_VERSION="v1",
        CRD_PLURAL="webapps",
        CRD_KIND="WebApp",
        DEFAULT_PORT=8080,
        SERVICE_PORT=80,
        MANAGED_BY="webapp-operator",
        RESYNC_INTERVAL=30.0,
        REDIS_URL="",
    )


@pytest.fixture
def scheme(settings) -> Scheme:
    return build_scheme(settings)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
