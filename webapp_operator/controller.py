"""
Controller: feeds watch events into the work queue and runs the workers
that drain it.

Event flow:
  WebApp event               → enqueue the WebApp's identity
  Deployment/Service event   → enqueue the identity of the WebApp that owns it
  Worker                     → reconcile, then honor the Result:
      requeue                → add now
      requeue_after          → add after the delay
      store error            → add after the item's backoff delay
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from webapp_operator.errors import Conflict, QueueShutDown, ReconcileAborted, StoreError
from webapp_operator.models import Identity
from webapp_operator.ownership import owner_identity
from webapp_operator.reconciler import Result, WebAppReconciler
from webapp_operator.scheme import ResourceKind, Scheme
from webapp_operator.workqueue import WorkQueue

logger = logging.getLogger("controller")


@dataclass(frozen=True)
class Watch:
    """A kind to watch; owned kinds are mapped to their owner before enqueueing."""

    resource: ResourceKind
    owned: bool = False


def watches(scheme: Scheme) -> Tuple[Watch, ...]:
    """WebApp is watched directly, its dependents through their owner reference."""
    return (Watch(scheme.webapp),) + tuple(Watch(kind, owned=True) for kind in scheme.owned)


def identity_for_event(watch: Watch, body: Mapping[str, Any], owner_kind: ResourceKind) -> Optional[Identity]:
    if not watch.owned:
        return Identity.from_body(body)
    return owner_identity(body, owner_kind)


class Controller:
    def __init__(
        self,
        reconciler: WebAppReconciler,
        queue: WorkQueue,
        workers: int = 1,
    ):
        self.reconciler = reconciler
        self.queue = queue
        self.workers = workers
        self._tasks: List[asyncio.Task] = []

    @property
    def scheme(self) -> Scheme:
        return self.reconciler.scheme

    @property
    def stop_event(self) -> asyncio.Event:
        return self.reconciler.stop_event

    def enqueue(self, identity: Identity) -> None:
        self.queue.add(identity)

    def handle_event(self, watch: Watch, event_type: Optional[str], body: Mapping[str, Any]) -> Optional[Identity]:
        """Translate one watch event into an enqueue. Returns the identity enqueued, if any."""
        identity = identity_for_event(watch, body, self.scheme.webapp)
        if identity is None:
            logger.debug(
                f"Ignoring {event_type or 'LISTED'} {watch.resource} "
                f"{body.get('metadata', {}).get('name')}: no {self.scheme.webapp} owner"
            )
            return None
        logger.debug(f"{event_type or 'LISTED'} {watch.resource} → enqueue {identity}")
        self.enqueue(identity)
        return identity

    def _apply_result(self, identity: Identity, result: Result) -> None:
        self.queue.forget(identity)
        if result.requeue:
            self.queue.add(identity)
        elif result.requeue_after:
            self.queue.add_after(identity, result.requeue_after)

    async def process_next(self) -> bool:
        """Run one reconcile pass. Returns False once the queue is shut down."""
        try:
            identity = await self.queue.get()
        except QueueShutDown:
            return False

        try:
            result = await self.reconciler.reconcile(identity)
        except ReconcileAborted:
            logger.info(f"[{identity}] Reconciliation aborted by shutdown")
        except Conflict as e:
            delay = self.queue.add_rate_limited(identity)
            logger.info(f"[{identity}] {e}; retrying in {delay:.0f}s")
        except StoreError as e:
            delay = self.queue.add_rate_limited(identity)
            logger.error(
                f"[{identity}] Reconciliation failed "
                f"(attempt {self.queue.num_requeues(identity)}): {e}; retrying in {delay:.0f}s"
            )
        except Exception:
            delay = self.queue.add_rate_limited(identity)
            logger.exception(f"[{identity}] Unexpected error during reconciliation; retrying in {delay:.0f}s")
        else:
            self._apply_result(identity, result)
        finally:
            self.queue.done(identity)
        return True

    async def _worker(self, n: int) -> None:
        logger.debug(f"Worker {n} started")
        while await self.process_next():
            pass
        logger.debug(f"Worker {n} stopped")

    def start(self) -> None:
        logger.info(f"Starting {self.workers} workers")
        for n in range(self.workers):
            self._tasks.append(asyncio.create_task(self._worker(n), name=f"webapp-worker-{n}"))

    async def stop(self, grace: float = 10.0) -> None:
        """Signal running passes to abort, close the queue and wait for the workers."""
        self.stop_event.set()
        self.queue.shut_down()
        if not self._tasks:
            return
        _, pending = await asyncio.wait(self._tasks, timeout=grace)
        for task in pending:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Controller stopped")
