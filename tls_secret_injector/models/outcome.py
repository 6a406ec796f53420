"""
Reconcile Outcome — What a reconciler reports back to the scheduler.

Every reconcile call produces a result, regardless of success or failure.
Only ``retryable`` results are requeued with backoff.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ReconcileResult(BaseModel):
    """Result of a single reconcile invocation."""

    status: Literal["ok", "skipped", "retry"]
    controller: str
    key: str
    ts_iso: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    reason: Optional[str] = None
    error: Optional[str] = None

    # Identities touched during this invocation
    created: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)

    @property
    def retryable(self) -> bool:
        return self.status == "retry"

    @classmethod
    def ok(
        cls,
        controller: str,
        key: str,
        created: Optional[List[str]] = None,
        updated: Optional[List[str]] = None,
        failed: Optional[List[str]] = None,
    ) -> "ReconcileResult":
        """Create a successful result."""
        return cls(
            status="ok",
            controller=controller,
            key=key,
            created=created or [],
            updated=updated or [],
            failed=failed or [],
        )

    @classmethod
    def skipped(cls, controller: str, key: str, reason: str) -> "ReconcileResult":
        """Create a no-op result for a policy skip or a vanished object."""
        return cls(status="skipped", controller=controller, key=key, reason=reason)

    @classmethod
    def retry(cls, controller: str, key: str, error: str) -> "ReconcileResult":
        """Create a result the scheduler should requeue with backoff."""
        return cls(status="retry", controller=controller, key=key, error=error)
