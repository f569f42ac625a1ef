"""
Resource registry: the kinds the operator reads, writes and watches.

Built once at startup from the settings and handed to the store and the
controller; nothing mutates it afterwards.
"""
from dataclasses import dataclass

from webapp_operator.config import Settings


@dataclass(frozen=True)
class ResourceKind:
    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return self.kind


DEPLOYMENTS = ResourceKind(group="apps", version="v1", plural="deployments", kind="Deployment")
SERVICES = ResourceKind(group="", version="v1", plural="services", kind="Service")


@dataclass(frozen=True)
class Scheme:
    webapp: ResourceKind
    deployment: ResourceKind = DEPLOYMENTS
    service: ResourceKind = SERVICES

    @property
    def owned(self) -> tuple[ResourceKind, ...]:
        """Kinds created on behalf of a WebApp and linked to it by owner reference."""
        return (self.deployment, self.service)


def build_scheme(settings: Settings) -> Scheme:
    return Scheme(
        webapp=ResourceKind(
            group=settings.CRD_GROUP,
            version=settings.CRD_VERSION,
            plural=settings.CRD_PLURAL,
            kind=settings.CRD_KIND,
        ),
    )
