"""
Work Queue — Coalescing key queue with per-key exponential backoff.

Keys are object identities. A key that is added again while still
waiting is coalesced into the pending entry; a key added while a worker
is processing it is parked and handed out again once the worker calls
``done()``. The same key is therefore never processed by two workers at
once.

Failed keys are re-added through ``add_rate_limited()``, which delays
them exponentially per key until ``forget()`` resets the count.

## Usage

    from tls_secret_injector.reliability.work_queue import WorkQueue

    queue = WorkQueue("secret")
    queue.add(key)

    key = queue.get(timeout=1)
    try:
        ...
    finally:
        queue.done(key)
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Hashable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


@dataclass
class BackoffPolicy:
    """Exponential backoff: base * 2^(failures-1), capped."""

    base_delay_seconds: float = 0.005
    max_delay_seconds: float = 1000.0

    def delay(self, failures: int) -> float:
        if failures <= 0:
            return 0.0
        # Cap the exponent so huge failure counts cannot overflow the float
        exponent = min(failures - 1, 64)
        return min(self.base_delay_seconds * (2 ** exponent), self.max_delay_seconds)


@dataclass
class QueueStats:
    """Point-in-time view of a queue."""

    name: str
    pending: int = 0
    processing: int = 0
    waiting: int = 0
    failures: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "pending": self.pending,
            "processing": self.processing,
            "waiting": self.waiting,
            "failures": dict(self.failures),
        }


class WorkQueue:
    """Thread-safe coalescing queue of hashable keys."""

    def __init__(
        self,
        name: str,
        backoff: Optional[BackoffPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.backoff = backoff or BackoffPolicy()
        self._clock = clock

        self._queue: Deque[Hashable] = deque()
        self._dirty: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._waiting: List[Tuple[float, int, Hashable]] = []
        self._failures: Dict[Hashable, int] = {}
        self._sequence = 0
        self._shutting_down = False
        self._cond = threading.Condition()

    # ── Adding ────────────────────────────────────────────────────

    def add(self, key: Hashable) -> None:
        """Queue ``key`` unless it is already pending."""
        with self._cond:
            if self._shutting_down or key in self._dirty:
                return
            self._dirty.add(key)
            if key not in self._processing:
                self._queue.append(key)
                self._cond.notify()

    def add_after(self, key: Hashable, delay_seconds: float) -> None:
        """Queue ``key`` once ``delay_seconds`` have passed."""
        if delay_seconds <= 0:
            self.add(key)
            return
        with self._cond:
            if self._shutting_down:
                return
            self._sequence += 1
            heapq.heappush(self._waiting, (self._clock() + delay_seconds, self._sequence, key))
            self._cond.notify()

    def add_rate_limited(self, key: Hashable) -> float:
        """Requeue a failed key with backoff. Returns the delay used."""
        with self._cond:
            failures = self._failures.get(key, 0) + 1
            self._failures[key] = failures
        delay = self.backoff.delay(failures)
        logger.debug(f"Requeueing [{key}] on {self.name} in {delay:.3f}s (failure {failures})")
        self.add_after(key, delay)
        return delay

    def forget(self, key: Hashable) -> None:
        """Reset the failure count of ``key``."""
        with self._cond:
            self._failures.pop(key, None)

    def num_requeues(self, key: Hashable) -> int:
        with self._cond:
            return self._failures.get(key, 0)

    # ── Consuming ─────────────────────────────────────────────────

    def get(self, timeout: Optional[float] = None) -> Optional[Hashable]:
        """
        Take the next key, blocking up to ``timeout`` seconds.

        Returns None on timeout or once the queue is shut down.
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while True:
                if self._shutting_down:
                    return None

                self._promote_ready()
                if self._queue:
                    key = self._queue.popleft()
                    self._dirty.discard(key)
                    self._processing.add(key)
                    return key

                wait_for = self._next_wait(deadline)
                if wait_for is not None and wait_for <= 0:
                    return None
                self._cond.wait(wait_for)

    def done(self, key: Hashable) -> None:
        """Mark ``key`` processed; re-queue it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._cond.notify()

    # ── Lifecycle ─────────────────────────────────────────────────

    def shutdown(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def stats(self) -> QueueStats:
        with self._cond:
            return QueueStats(
                name=self.name,
                pending=len(self._queue),
                processing=len(self._processing),
                waiting=len(self._waiting),
                failures={str(k): v for k, v in self._failures.items()},
            )

    # ── Internals (lock held) ─────────────────────────────────────

    def _promote_ready(self) -> None:
        now = self._clock()
        while self._waiting and self._waiting[0][0] <= now:
            _, _, key = heapq.heappop(self._waiting)
            if key in self._dirty:
                continue
            self._dirty.add(key)
            if key not in self._processing:
                self._queue.append(key)

    def _next_wait(self, deadline: Optional[float]) -> Optional[float]:
        now = self._clock()
        candidates = []
        if deadline is not None:
            candidates.append(deadline - now)
        if self._waiting:
            candidates.append(max(0.0, self._waiting[0][0] - now))
        if not candidates:
            return None
        return min(candidates)
