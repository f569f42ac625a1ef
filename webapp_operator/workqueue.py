"""
Work queue for reconcile requests.

Semantics:
  - Coalescing: adding an item that is already pending is a no-op
  - In-flight guard: an item handed out by get() is not handed out again
    until done(); an add() in between marks it dirty and done() re-queues it
  - Delayed adds: at most one timer per item, the earliest deadline wins
  - Rate-limited adds: exponential per-item backoff, reset by forget()
"""
import asyncio
import logging
from typing import Dict, Hashable, Optional, Set, Tuple

from webapp_operator.errors import QueueShutDown

logger = logging.getLogger("workqueue")


class ExponentialBackoff:
    """Per-item delay of base * 2**failures, capped. No retry ceiling."""

    def __init__(self, base: float = 1.0, cap: float = 300.0):
        self.base = base
        self.cap = cap
        self._failures: Dict[Hashable, int] = {}

    def when(self, item: Hashable) -> float:
        """Record a failure and return the delay before the next attempt."""
        failures = self._failures.get(item, 0)
        self._failures[item] = failures + 1
        # exponent clamped so long failure streaks stay finite
        return min(self.base * 2 ** min(failures, 64), self.cap)

    def retries(self, item: Hashable) -> int:
        return self._failures.get(item, 0)

    def forget(self, item: Hashable) -> None:
        self._failures.pop(item, None)


class WorkQueue:
    def __init__(self, backoff: Optional[ExponentialBackoff] = None):
        self.backoff = backoff or ExponentialBackoff()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._dirty: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._waiting: Dict[Hashable, Tuple[float, asyncio.TimerHandle]] = {}
        self._shutting_down = False

    def __len__(self) -> int:
        """Number of items waiting to be handed out."""
        return self._queue.qsize()

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def is_processing(self, item: Hashable) -> bool:
        return item in self._processing

    def add(self, item: Hashable) -> None:
        if self._shutting_down:
            return
        if item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            # Deferred: done() puts it back once the current pass finishes.
            return
        self._queue.put_nowait(item)

    def add_after(self, item: Hashable, delay: float) -> None:
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(item)
            return
        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay
        existing = self._waiting.get(item)
        if existing is not None:
            if existing[0] <= deadline:
                return
            existing[1].cancel()
        handle = loop.call_at(deadline, self._fire, item)
        self._waiting[item] = (deadline, handle)

    def _fire(self, item: Hashable) -> None:
        self._waiting.pop(item, None)
        self.add(item)

    def add_rate_limited(self, item: Hashable) -> float:
        """Re-add after the item's backoff delay; returns the delay used."""
        delay = self.backoff.when(item)
        self.add_after(item, delay)
        return delay

    def forget(self, item: Hashable) -> None:
        self.backoff.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return self.backoff.retries(item)

    async def get(self) -> Hashable:
        """Wait for the next item. Raises QueueShutDown once the queue is shut down."""
        if self._shutting_down:
            raise QueueShutDown()
        item = await self._queue.get()
        if self._shutting_down:
            # Wake the next waiter too.
            self._queue.put_nowait(item)
            raise QueueShutDown()
        self._dirty.discard(item)
        self._processing.add(item)
        return item

    def done(self, item: Hashable) -> None:
        self._processing.discard(item)
        if item in self._dirty and not self._shutting_down:
            self._queue.put_nowait(item)

    def shut_down(self) -> None:
        if self._shutting_down:
            return
        self._shutting_down = True
        for _, handle in self._waiting.values():
            handle.cancel()
        self._waiting.clear()
        # Unblock any get() that is waiting on an empty queue.
        self._queue.put_nowait(None)
        logger.info("Work queue shut down")
