"""
Drift detection: compare an observed dependent against its synthesized shape.

Only the Deployment replica count is corrected once the object exists. Image,
port and env are applied at creation time; the Service is checked for
existence only.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class ActionKind(str, Enum):
    NOOP = "NoOp"
    CREATE = "Create"
    UPDATE_REPLICAS = "UpdateReplicas"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    replicas: Optional[int] = None

    def __str__(self) -> str:
        if self.kind is ActionKind.UPDATE_REPLICAS:
            return f"{self.kind.value}({self.replicas})"
        return self.kind.value


NOOP = Action(ActionKind.NOOP)
CREATE = Action(ActionKind.CREATE)


def _replicas(obj: Mapping[str, Any]) -> int:
    # The API server defaults an omitted replica count to 1.
    replicas = obj.get("spec", {}).get("replicas")
    return 1 if replicas is None else replicas


def diff_workload(desired: Mapping[str, Any], observed: Optional[Mapping[str, Any]]) -> Action:
    if observed is None:
        return CREATE
    want = _replicas(desired)
    if _replicas(observed) != want:
        return Action(ActionKind.UPDATE_REPLICAS, replicas=want)
    return NOOP


def diff_exposure(desired: Mapping[str, Any], observed: Optional[Mapping[str, Any]]) -> Action:
    if observed is None:
        return CREATE
    return NOOP
