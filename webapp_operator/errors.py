"""
Error taxonomy for store operations and the reconcile loop.

The Kubernetes client raises a single ApiException type; translate_api_error
turns it into the domain errors the reconciler and scheduler branch on.
"""
import json
from typing import Optional

from kubernetes.client import ApiException


class StoreError(Exception):
    """A store operation failed. Transient unless a subclass says otherwise."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFound(StoreError):
    """The object does not exist."""


class AlreadyExists(StoreError):
    """Create lost a race: an object with that name already exists."""


class Conflict(StoreError):
    """Update was based on a stale resourceVersion."""


class ReconcileAborted(Exception):
    """Shutdown was requested while a reconciliation pass was running."""


class QueueShutDown(Exception):
    """The work queue no longer hands out items."""


def _status_reason(body) -> str:
    """Extract `reason` from a Kubernetes Status body, if there is one."""
    if not body:
        return ""
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return ""
    if not isinstance(data, dict):
        return ""
    return data.get("reason", "") or ""


def translate_api_error(e: ApiException, what: str = "") -> StoreError:
    """Map an ApiException onto the store error taxonomy."""
    prefix = f"{what}: " if what else ""
    if e.status == 404:
        return NotFound(f"{prefix}not found", status=404)
    if e.status == 409:
        if _status_reason(e.body) == "AlreadyExists":
            return AlreadyExists(f"{prefix}already exists", status=409)
        return Conflict(f"{prefix}conflict: {e.reason}", status=409)
    return StoreError(f"{prefix}store error (status={e.status}): {e.reason}", status=e.status)
