"""
Invocation Context — Cancellation and deadline for one handler call.

Each entry point (admission request, reconcile) gets its own context.
Handlers call ``context.check()`` before every store call so a stopped
process or an exceeded deadline ends the invocation at the next I/O
boundary. The context never retries anything itself.
"""

from __future__ import annotations

import threading
import time
from typing import Optional
from uuid import uuid4

from .errors import InvocationCancelled


class InvocationContext:
    """
    Context provided to handlers during one invocation.

    ``stop`` is usually shared with the process so shutdown cancels
    everything in flight; the deadline is per invocation.
    """

    def __init__(
        self,
        stop: Optional[threading.Event] = None,
        timeout_seconds: Optional[float] = None,
        request_id: Optional[str] = None,
    ):
        self.stop = stop or threading.Event()
        self.deadline = time.monotonic() + timeout_seconds if timeout_seconds else None
        self.request_id = request_id or uuid4().hex[:8]

    @classmethod
    def background(cls) -> "InvocationContext":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        self.stop.set()

    @property
    def remaining_seconds(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        return self.stop.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self) -> None:
        """Raise InvocationCancelled if the invocation must stop."""
        if self.cancelled:
            raise InvocationCancelled(f"invocation {self.request_id} cancelled")
        if self.expired:
            raise InvocationCancelled(f"invocation {self.request_id} exceeded its deadline")
