"""
Leader Election — Run the controllers on one replica at a time.

Uses the kubernetes client's leader election over a coordination.k8s.io Lease.
The election loop runs in a background thread; ``on_started`` is called
once the lock is held and ``on_stopped`` once it is lost. Losing the lock
is final for this process: the manager stops and the pod restarts.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional
from uuid import uuid4

from kubernetes.leaderelection import electionconfig, leaderelection
from kubernetes.leaderelection.resourcelock.leaselock import LeaseLock

logger = logging.getLogger(__name__)

LEASE_DURATION_SECONDS = 15
RENEW_DEADLINE_SECONDS = 10
RETRY_PERIOD_SECONDS = 2


def candidate_identity() -> str:
    """Hostname plus a random suffix, unique per process."""
    return f"{socket.gethostname()}_{uuid4().hex[:8]}"


class LeaderElector:
    """Acquire and hold a leader lock in the background."""

    def __init__(
        self,
        resource: str,
        namespace: str,
        on_started: Callable[[], None],
        on_stopped: Callable[[], None],
        identity: Optional[str] = None,
    ):
        self.resource = resource
        self.namespace = namespace
        self.identity = identity or candidate_identity()
        self.on_started = on_started
        self.on_stopped = on_stopped
        self.is_leader = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _started(self) -> None:
        logger.info(f"Acquired leader lock {self.namespace}/{self.resource} as {self.identity}")
        self.is_leader.set()
        self.on_started()

    def _stopped(self) -> None:
        logger.warning(f"Lost leader lock {self.namespace}/{self.resource}")
        self.is_leader.clear()
        self.on_stopped()

    def build_config(self) -> electionconfig.Config:
        lock = LeaseLock(self.resource, self.namespace, self.identity)
        return electionconfig.Config(
            lock,
            LEASE_DURATION_SECONDS,
            RENEW_DEADLINE_SECONDS,
            RETRY_PERIOD_SECONDS,
            self._started,
            self._stopped,
        )

    def start(self) -> None:
        """Start campaigning. Returns immediately."""
        election = leaderelection.LeaderElection(self.build_config())
        self._thread = threading.Thread(target=election.run, name="leader-election", daemon=True)
        self._thread.start()
        logger.info(f"Waiting for leader lock {self.namespace}/{self.resource}")
