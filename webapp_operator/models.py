"""
Pydantic models for the WebApp custom resource.

Field names follow the Kubernetes wire format (camelCase) so bodies from the
API server validate as-is and dump back without aliasing.
"""
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Namespace/name key of a WebApp; the unit the work queue schedules."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "Identity":
        metadata = body.get("metadata", {})
        return cls(namespace=metadata.get("namespace", ""), name=metadata["name"])

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class EnvVar(BaseModel):
    name: str
    value: str = ""


class WebAppSpec(BaseModel):
    """Desired state. Authored by the user, never written by the operator."""

    model_config = ConfigDict(extra="ignore")

    image: str = Field(..., min_length=1, examples=["nginx:1.25"])
    replicas: int = Field(..., ge=1, le=10)
    port: Optional[int] = Field(default=None, ge=0, le=65535)
    env: List[EnvVar] = []


class Condition(BaseModel):
    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    lastTransitionTime: Optional[str] = None


class WebAppStatus(BaseModel):
    """Observed state. Written only by the reconciler, via the status subresource."""

    model_config = ConfigDict(extra="ignore")

    availableReplicas: int = 0
    conditions: List[Condition] = []

    def get_condition(self, ctype: str) -> Optional[Condition]:
        for c in self.conditions:
            if c.type == ctype:
                return c
        return None


class ObjectMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    namespace: str = ""
    uid: str = ""
    resourceVersion: str = ""
    labels: Dict[str, str] = {}


class WebApp(BaseModel):
    model_config = ConfigDict(extra="ignore")

    apiVersion: str
    kind: str
    metadata: ObjectMeta
    spec: WebAppSpec
    status: WebAppStatus = Field(default_factory=WebAppStatus)

    @property
    def identity(self) -> Identity:
        return Identity(namespace=self.metadata.namespace, name=self.metadata.name)

    def owner_body(self) -> Dict[str, Any]:
        """The subset of the object an owner reference is built from."""
        return {
            "apiVersion": self.apiVersion,
            "kind": self.kind,
            "metadata": {
                "name": self.metadata.name,
                "namespace": self.metadata.namespace,
                "uid": self.metadata.uid,
            },
        }
