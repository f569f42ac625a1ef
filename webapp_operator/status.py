"""
Status computation for a WebApp from its Deployment's observed state.
"""
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping

from webapp_operator.models import Condition, ConditionStatus, WebApp, WebAppStatus

READY = "Ready"
REASON_READY = "DeploymentReady"
REASON_NOT_READY = "DeploymentNotReady"


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def set_condition(
    conditions: List[Condition],
    ctype: str,
    status: ConditionStatus,
    reason: str,
    message: str,
    now: Callable[[], str] = utc_now,
) -> List[Condition]:
    """
    Upsert a condition by type and return the new list.
    lastTransitionTime only moves when the status actually flips.
    """
    result = []
    replaced = False
    for c in conditions:
        if c.type != ctype:
            result.append(c)
            continue
        if replaced:
            continue
        changed = c.status != status
        result.append(Condition(
            type=ctype,
            status=status,
            reason=reason,
            message=message,
            lastTransitionTime=now() if changed or not c.lastTransitionTime else c.lastTransitionTime,
        ))
        replaced = True
    if not replaced:
        result.append(Condition(
            type=ctype,
            status=status,
            reason=reason,
            message=message,
            lastTransitionTime=now(),
        ))
    return result


def available_replicas(deployment: Mapping[str, Any]) -> int:
    return (deployment.get("status") or {}).get("availableReplicas") or 0


def compute_status(
    webapp: WebApp, deployment: Mapping[str, Any], now: Callable[[], str] = utc_now
) -> WebAppStatus:
    available = available_replicas(deployment)
    desired = webapp.spec.replicas
    message = f"Deployment has {available}/{desired} replicas available"
    if available == desired:
        status, reason = ConditionStatus.TRUE, REASON_READY
    else:
        status, reason = ConditionStatus.FALSE, REASON_NOT_READY
    return WebAppStatus(
        availableReplicas=available,
        conditions=set_condition(webapp.status.conditions, READY, status, reason, message, now=now),
    )
