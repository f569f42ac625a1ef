"""
WebApp reconciler: converges one WebApp's Deployment and Service toward its
spec and reports status back onto the WebApp.

Reconcile pass (one corrective action per pass, then requeue):
  1. Get WebApp: gone → done (garbage collector removes dependents)
  2. Get Deployment: missing → create, requeue
  3. Compare replicas: mismatch → update replicas, requeue
  4. Get Service: missing → create, requeue
  5. Compute status: write it if it changed, requeue after RESYNC_INTERVAL

Every decision is re-derived from store reads, so a pass can be aborted or
repeated at any point. The reconciler never sleeps or retries: store errors
propagate to the controller, which owns retry timing.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from webapp_operator import events
from webapp_operator.config import Settings, settings as default_settings
from webapp_operator.drift import ActionKind, diff_exposure, diff_workload
from webapp_operator.errors import AlreadyExists, NotFound, ReconcileAborted
from webapp_operator.events import EventPublisher
from webapp_operator.models import Identity, WebApp
from webapp_operator.ownership import is_controlled_by, set_owner
from webapp_operator.scheme import ResourceKind, Scheme
from webapp_operator.status import READY, compute_status, utc_now
from webapp_operator.synthesizer import deployment_for, service_for

logger = logging.getLogger("reconciler")


@dataclass(frozen=True)
class Result:
    """What the scheduler should do with the identity after a successful pass."""

    requeue: bool = False
    requeue_after: Optional[float] = None


class WebAppReconciler:
    def __init__(
        self,
        store,
        scheme: Scheme,
        settings: Settings = default_settings,
        publisher: Optional[EventPublisher] = None,
        stop_event: Optional[asyncio.Event] = None,
        now: Callable[[], str] = utc_now,
    ):
        self.store = store
        self.scheme = scheme
        self.settings = settings
        self.publisher = publisher or EventPublisher()
        self.stop_event = stop_event or asyncio.Event()
        self._now = now

    def _checkpoint(self) -> None:
        if self.stop_event.is_set():
            raise ReconcileAborted("shutdown requested")

    async def _get(self, kind: ResourceKind, identity: Identity) -> Optional[Dict[str, Any]]:
        """Fetch by identity; None if the object does not exist."""
        self._checkpoint()
        try:
            return await self.store.get(kind, identity.namespace, identity.name)
        except NotFound:
            return None

    async def _create(self, kind: ResourceKind, body: Dict[str, Any], identity: Identity) -> bool:
        """Create the object; False if it already existed."""
        self._checkpoint()
        try:
            await self.store.create(kind, body)
        except AlreadyExists:
            # Created concurrently; the next pass reads it back.
            logger.info(f"[{identity}] {kind} already exists, requeueing")
            return False
        return True

    def _check_owner(self, kind: ResourceKind, obj: Dict[str, Any], webapp: WebApp) -> bool:
        if is_controlled_by(obj, webapp):
            return True
        logger.warning(
            f"[{webapp.identity}] {kind} {webapp.identity} is not controlled by this "
            f"{webapp.kind}; leaving it as is"
        )
        return False

    async def reconcile(self, identity: Identity) -> Result:
        logger.info(f"[{identity}] Starting reconciliation")

        # Step 1: the declaration itself
        body = await self._get(self.scheme.webapp, identity)
        if body is None:
            logger.info(f"[{identity}] {self.scheme.webapp} not found, must have been deleted")
            return Result()
        webapp = WebApp.model_validate(body)

        # Step 2/3: Deployment exists and runs the declared replica count
        desired = deployment_for(webapp, self.settings)
        deployment = await self._get(self.scheme.deployment, identity)
        action = diff_workload(desired, deployment)

        if action.kind is ActionKind.CREATE:
            set_owner(desired, webapp)
            logger.info(
                f"[{identity}] Creating Deployment "
                f"(image={webapp.spec.image}, replicas={webapp.spec.replicas})"
            )
            if await self._create(self.scheme.deployment, desired, identity):
                await self.publisher.publish(identity, events.DEPLOYMENT_CREATED, "Deployment created")
            return Result(requeue=True)

        owned = self._check_owner(self.scheme.deployment, deployment, webapp)

        if owned and action.kind is ActionKind.UPDATE_REPLICAS:
            current = deployment["spec"].get("replicas")
            logger.info(f"[{identity}] Deployment replicas {current} != {action.replicas}, updating")
            deployment["spec"]["replicas"] = action.replicas
            self._checkpoint()
            await self.store.update(self.scheme.deployment, deployment)
            await self.publisher.publish(
                identity, events.REPLICAS_UPDATED, f"Replicas {current} -> {action.replicas}"
            )
            return Result(requeue=True)

        # Step 4: Service exists
        desired_service = service_for(webapp, self.settings)
        service = await self._get(self.scheme.service, identity)
        if diff_exposure(desired_service, service).kind is ActionKind.CREATE:
            set_owner(desired_service, webapp)
            logger.info(f"[{identity}] Creating Service")
            if await self._create(self.scheme.service, desired_service, identity):
                await self.publisher.publish(identity, events.SERVICE_CREATED, "Service created")
            return Result(requeue=True)

        self._check_owner(self.scheme.service, service, webapp)

        # Step 5: status
        status = compute_status(webapp, deployment, now=self._now)
        if status != webapp.status:
            body["status"] = status.model_dump(mode="json", exclude_none=True)
            self._checkpoint()
            await self.store.update_status(self.scheme.webapp, body)
            ready = status.get_condition(READY)
            await self.publisher.publish(identity, events.STATUS_UPDATED, ready.message)
            logger.info(
                f"[{identity}] Status updated: availableReplicas={status.availableReplicas}, "
                f"{READY}={ready.status.value}"
            )
        else:
            logger.debug(f"[{identity}] Status unchanged")

        logger.info(f"[{identity}] Reconciliation complete")
        return Result(requeue_after=self.settings.RESYNC_INTERVAL)
