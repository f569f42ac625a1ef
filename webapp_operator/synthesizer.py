"""
Desired-state synthesis: WebApp -> Deployment and Service manifests.

Pure functions, no I/O. The same WebApp always yields the same manifests, so
comparing against the cluster never reports drift that isn't there.
"""
from typing import Any, Dict, Tuple

from webapp_operator.config import Settings, settings as default_settings
from webapp_operator.models import WebApp
from webapp_operator.scheme import DEPLOYMENTS, SERVICES

APP_LABEL = "app"
MANAGED_BY_LABEL = "managed-by"


def labels_for(webapp: WebApp, settings: Settings = default_settings) -> Dict[str, str]:
    return {
        APP_LABEL: webapp.metadata.name,
        MANAGED_BY_LABEL: settings.MANAGED_BY,
    }


def container_port(webapp: WebApp, settings: Settings = default_settings) -> int:
    return webapp.spec.port or settings.DEFAULT_PORT


def deployment_for(webapp: WebApp, settings: Settings = default_settings) -> Dict[str, Any]:
    labels = labels_for(webapp, settings)
    return {
        "apiVersion": DEPLOYMENTS.api_version,
        "kind": DEPLOYMENTS.kind,
        "metadata": {
            "name": webapp.metadata.name,
            "namespace": webapp.metadata.namespace,
            "labels": dict(labels),
        },
        "spec": {
            "replicas": webapp.spec.replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "containers": [{
                        "name": webapp.metadata.name,
                        "image": webapp.spec.image,
                        "ports": [{
                            "containerPort": container_port(webapp, settings),
                            "name": "http",
                        }],
                        "env": [{"name": e.name, "value": e.value} for e in webapp.spec.env],
                    }],
                },
            },
        },
    }


def service_for(webapp: WebApp, settings: Settings = default_settings) -> Dict[str, Any]:
    labels = labels_for(webapp, settings)
    return {
        "apiVersion": SERVICES.api_version,
        "kind": SERVICES.kind,
        "metadata": {
            "name": webapp.metadata.name,
            "namespace": webapp.metadata.namespace,
            "labels": dict(labels),
        },
        "spec": {
            "selector": dict(labels),
            "ports": [{
                "port": settings.SERVICE_PORT,
                "targetPort": container_port(webapp, settings),
                "protocol": "TCP",
                "name": "http",
            }],
            "type": "ClusterIP",
        },
    }


def synthesize(
    webapp: WebApp, settings: Settings = default_settings
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Return the (Deployment, Service) manifests the WebApp should own."""
    return deployment_for(webapp, settings), service_for(webapp, settings)
