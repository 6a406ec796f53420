"""
Engine Errors — Failures that abort a whole invocation.

Per-binding and per-replica failures are never raised; they are logged
where they happen.
"""

from __future__ import annotations

from typing import List, Optional


class InvalidDeclarationError(Exception):
    """The routing declaration could not be interpreted at all."""
    pass


class InvocationCancelled(Exception):
    """The caller stopped the invocation or its deadline passed."""

    def __init__(self, message: str, created: Optional[List[str]] = None):
        self.message = message
        # Identities already created before the cancellation was noticed
        self.created = list(created or [])
        super().__init__(message)
