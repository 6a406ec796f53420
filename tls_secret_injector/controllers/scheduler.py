"""
Controller — Watch one kind and feed its identities to a reconciler.

A controller owns one watch thread and a pool of worker threads sharing
a WorkQueue. The watch only enqueues object identities; workers always
re-read the object from the store, so a burst of events for one key
collapses into a single reconcile.

Only ADDED and MODIFIED events are enqueued. Deletions, bookmarks and
watch errors are dropped.

## Usage

    controller = Controller("secret", KIND_SECRET, reconciler, store)
    controller.start(stop_event)
    ...
    stop_event.set()
    controller.join()
"""

from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Protocol

from ..engine.context import InvocationContext
from ..engine.errors import InvocationCancelled
from ..models.outcome import ReconcileResult
from ..models.resources import NamespacedName
from ..observability.metrics import MetricsRegistry
from ..observability.metrics import metrics as default_metrics
from ..reliability.work_queue import WorkQueue
from ..store.base import EVENT_ADDED, EVENT_MODIFIED, ResourceStore, WatchEvent

logger = logging.getLogger(__name__)

ENQUEUED_EVENTS = (EVENT_ADDED, EVENT_MODIFIED)

# Pause before re-opening a watch that failed outright
WATCH_RESTART_SECONDS = 5.0


class Reconciler(Protocol):
    controller: str

    def reconcile(
        self,
        identity: NamespacedName,
        context: Optional[InvocationContext] = None,
    ) -> ReconcileResult:
        ...


class Controller:
    """Watch + work queue + workers for one reconciler."""

    def __init__(
        self,
        name: str,
        kind: str,
        reconciler: Reconciler,
        store: ResourceStore,
        metrics: Optional[MetricsRegistry] = None,
        workers: int = 1,
        queue: Optional[WorkQueue] = None,
        timeout_seconds: Optional[float] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.name = name
        self.kind = kind
        self.reconciler = reconciler
        self.store = store
        self.metrics = metrics or default_metrics
        self.workers = workers
        self.queue = queue or WorkQueue(name)
        self.timeout_seconds = timeout_seconds
        self._threads: List[threading.Thread] = []
        self._stop: Optional[threading.Event] = None

    # ── Lifecycle ─────────────────────────────────────────────────

    def start(self, stop: threading.Event) -> None:
        """Start the watch thread and the workers. Returns immediately."""
        self._stop = stop
        self._threads = [
            threading.Thread(target=self.run_watch, args=(stop,), name=f"{self.name}-watch", daemon=True)
        ]
        for i in range(self.workers):
            self._threads.append(
                threading.Thread(target=self.run_worker, args=(stop,), name=f"{self.name}-worker-{i}", daemon=True)
            )
        for thread in self._threads:
            thread.start()
        logger.info(f"Started controller {self.name} with {self.workers} worker(s)")

    def join(self, timeout: Optional[float] = None) -> None:
        """Shut the queue down and wait for all threads."""
        self.queue.shutdown()
        for thread in self._threads:
            thread.join(timeout)
        logger.info(f"Stopped controller {self.name}")

    # ── Watch side ────────────────────────────────────────────────

    def run_watch(self, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                for event in self.store.watch(self.kind, stop):
                    self.handle_event(event)
                    if stop.is_set():
                        break
            except Exception as e:
                logger.error(f"Watch on {self.kind} for controller {self.name} failed: {e}")
                stop.wait(WATCH_RESTART_SECONDS)
        self.queue.shutdown()

    def handle_event(self, event: WatchEvent) -> bool:
        """Enqueue the event's identity if its type is relevant."""
        if event.type not in ENQUEUED_EVENTS:
            logger.debug(f"Ignoring {event.type} event for {event.kind} [{event.key}]")
            return False
        self.queue.add(event.key)
        self.metrics.set_gauge("work_queue_depth", len(self.queue), labels={"controller": self.name})
        return True

    # ── Worker side ───────────────────────────────────────────────

    def run_worker(self, stop: threading.Event) -> None:
        while not stop.is_set() and not self.queue.shutting_down:
            self.process_next(stop, timeout=1.0)

    def process_next(self, stop: Optional[threading.Event] = None, timeout: Optional[float] = None) -> bool:
        """
        Reconcile one key from the queue.

        Returns False if nothing was available within ``timeout``.
        """
        key = self.queue.get(timeout=timeout)
        if key is None:
            return False

        stop = stop or self._stop or threading.Event()
        start = time.monotonic()
        outcome = "error"
        try:
            context = InvocationContext(stop=stop, timeout_seconds=self.timeout_seconds)
            result = self.reconciler.reconcile(key, context)
            outcome = result.status
            if result.retryable:
                logger.warning(f"Reconcile of {self.kind} [{key}] failed, will retry: {result.error}")
                self.queue.add_rate_limited(key)
            else:
                self.queue.forget(key)
        except InvocationCancelled as e:
            outcome = "cancelled"
            logger.info(f"Reconcile of {self.kind} [{key}] interrupted: {e}")
            if not stop.is_set():
                self.queue.add_rate_limited(key)
        except Exception as e:
            logger.exception(f"Reconcile of {self.kind} [{key}] raised: {e}")
            self.queue.add_rate_limited(key)
        finally:
            self.queue.done(key)
            labels = {"controller": self.name}
            self.metrics.increment("reconcile_total", labels={"controller": self.name, "result": outcome})
            self.metrics.timing("reconcile_duration_seconds", time.monotonic() - start, labels=labels)
            self.metrics.set_gauge("work_queue_depth", len(self.queue), labels=labels)
        return True
