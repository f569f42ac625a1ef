"""
Configuration module. All settings from env vars with sensible defaults.
Follows 12-factor app methodology.
"""
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    # Kubernetes
    KUBECONFIG: str = os.environ.get("KUBECONFIG", "")
    IN_CLUSTER: bool = os.environ.get("IN_CLUSTER", "false").lower() == "true"
    WATCH_NAMESPACE: str = os.environ.get("WATCH_NAMESPACE", "")

    # CRD
    CRD_GROUP: str = os.environ.get("CRD_GROUP", "example.com")
    CRD_VERSION: str = os.environ.get("CRD_VERSION", "v1")
    CRD_PLURAL: str = os.environ.get("CRD_PLURAL", "webapps")
    CRD_KIND: str = os.environ.get("CRD_KIND", "WebApp")

    # Scheduling
    MAX_WORKERS: int = int(os.environ.get("MAX_WORKERS", "3"))
    RESYNC_INTERVAL: float = float(os.environ.get("RESYNC_INTERVAL", "30"))
    BACKOFF_BASE: float = float(os.environ.get("BACKOFF_BASE", "1"))
    BACKOFF_MAX: float = float(os.environ.get("BACKOFF_MAX", "300"))
    SHUTDOWN_GRACE: float = float(os.environ.get("SHUTDOWN_GRACE", "10"))

    # Dependents
    DEFAULT_PORT: int = int(os.environ.get("DEFAULT_PORT", "8080"))
    SERVICE_PORT: int = int(os.environ.get("SERVICE_PORT", "80"))
    MANAGED_BY: str = os.environ.get("MANAGED_BY", "webapp-operator")

    # Observability
    REDIS_URL: str = os.environ.get("REDIS_URL", "")
    LIVENESS_ENDPOINT: str = os.environ.get("LIVENESS_ENDPOINT", "")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


settings = Settings()
