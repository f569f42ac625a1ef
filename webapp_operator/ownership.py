"""
Owner references between a WebApp and its dependents.

Deletion of dependents is left to the Kubernetes garbage collector: each
Deployment/Service carries a controller owner reference to its WebApp, and
the operator keeps no dependency graph of its own.
"""
from typing import Any, Dict, Mapping, Optional

import kopf

from webapp_operator.models import Identity, WebApp
from webapp_operator.scheme import ResourceKind


def set_owner(child: Dict[str, Any], owner: WebApp) -> Dict[str, Any]:
    """Append a controller owner reference to `child` (idempotent by uid)."""
    kopf.append_owner_reference(child, owner=owner.owner_body())
    return child


def controller_reference(obj: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    for ref in obj.get("metadata", {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


def owner_identity(obj: Mapping[str, Any], owner_kind: ResourceKind) -> Optional[Identity]:
    """
    Map a dependent to the identity of the WebApp controlling it.
    Returns None when the object is not controlled by a WebApp.
    Owner references are namespace-local, so the owner shares the child's namespace.
    """
    ref = controller_reference(obj)
    if ref is None:
        return None
    if ref.get("kind") != owner_kind.kind or ref.get("apiVersion") != owner_kind.api_version:
        return None
    namespace = obj.get("metadata", {}).get("namespace", "")
    return Identity(namespace=namespace, name=ref["name"])


def is_controlled_by(obj: Mapping[str, Any], owner: WebApp) -> bool:
    ref = controller_reference(obj)
    return ref is not None and ref.get("uid") == owner.metadata.uid
