"""
WebApp Operator — Kubernetes operator for WebApp custom resources.

Architecture:
  kopf watch streams → Controller.handle_event → WorkQueue (coalescing)
    → workers → WebAppReconciler.reconcile(identity):
      1. Ensure Deployment  (create / fix replica count)
      2. Ensure Service
      3. Update WebApp status (availableReplicas + Ready condition)
    → requeue now, after 30s, or after backoff

  Watches:
    WebApp                  direct
    Deployment, Service     via owner reference, filtered by managed-by label

  On Delete:
    Nothing to do: dependents carry owner references and are removed by the
    Kubernetes garbage collector.

  Concurrency Control:
    - MAX_WORKERS reconcile workers share one queue
    - One pass at a time per WebApp

Run with `webapp-operator` or `kopf run -m webapp_operator.operator --standalone`.
"""
import logging

import kopf

from webapp_operator import config
from webapp_operator.controller import Controller, Watch, watches
from webapp_operator.events import EventPublisher
from webapp_operator.reconciler import WebAppReconciler
from webapp_operator.scheme import Scheme, build_scheme
from webapp_operator.store import KubeStore, load_kube_config
from webapp_operator.synthesizer import MANAGED_BY_LABEL
from webapp_operator.workqueue import ExponentialBackoff, WorkQueue

logger = logging.getLogger("webapp-operator")

SCHEME = build_scheme(config.settings)


def build_controller(settings: config.Settings, scheme: Scheme, store=None) -> Controller:
    if store is None:
        load_kube_config(settings)
        store = KubeStore(scheme)
    reconciler = WebAppReconciler(
        store,
        scheme,
        settings=settings,
        publisher=EventPublisher(settings.REDIS_URL),
    )
    queue = WorkQueue(ExponentialBackoff(base=settings.BACKOFF_BASE, cap=settings.BACKOFF_MAX))
    return Controller(reconciler, queue, workers=settings.MAX_WORKERS)


# ---------------------------------------------------------------------------
# Kopf operator settings & lifecycle
# ---------------------------------------------------------------------------

@kopf.on.startup()
async def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **kwargs):
    settings.posting.level = logging.WARNING
    # Single replica, no peering: leader election is out of scope
    settings.peering.standalone = True

    controller = build_controller(config.settings, SCHEME)
    controller.start()
    memo.controller = controller
    logger.info(
        f"WebApp Operator started (kind={SCHEME.webapp.api_version}/{SCHEME.webapp.kind}, "
        f"workers={config.settings.MAX_WORKERS}, resync={config.settings.RESYNC_INTERVAL}s)"
    )


@kopf.on.cleanup()
async def shutdown(memo: kopf.Memo, **kwargs):
    controller = memo.get("controller")
    if controller is None:
        return
    await controller.stop(grace=config.settings.SHUTDOWN_GRACE)
    await controller.reconciler.publisher.close()
    logger.info("WebApp Operator stopped")


# ---------------------------------------------------------------------------
# Watches: every event funnels into the same work queue
# ---------------------------------------------------------------------------

def _register(watch: Watch, registry=None) -> None:
    labels = {MANAGED_BY_LABEL: config.settings.MANAGED_BY} if watch.owned else None
    resource = watch.resource

    @kopf.on.event(
        group=resource.group,
        version=resource.version,
        plural=resource.plural,
        id=f"enqueue-{resource.plural}",
        labels=labels,
        registry=registry,
    )
    async def enqueue(event, body, memo: kopf.Memo, **kwargs):
        memo.controller.handle_event(watch, event.get("type"), body)


def register_watches(scheme: Scheme, registry=None) -> None:
    for watch in watches(scheme):
        _register(watch, registry)


register_watches(SCHEME)


def main():
    logging.basicConfig(
        level=config.settings.LOG_LEVEL.upper(),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    namespace = config.settings.WATCH_NAMESPACE
    kopf.run(
        standalone=True,
        clusterwide=not namespace,
        namespaces=[namespace] if namespace else [],
        liveness_endpoint=config.settings.LIVENESS_ENDPOINT or None,
    )


if __name__ == "__main__":
    main()
