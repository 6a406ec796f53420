"""
Store Errors — Distinct outcomes of resource store calls.

``NotFoundError``, ``AlreadyExistsError`` and ``ConflictError`` are the
benign race outcomes callers branch on. Anything else is a plain
``StoreError`` and is treated as transient.
"""

from __future__ import annotations

from typing import Optional


class StoreError(Exception):
    """A store call failed for a reason other than a benign race."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class NotFoundError(StoreError):
    """The requested object does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class AlreadyExistsError(StoreError):
    """A create raced with another writer and lost."""

    def __init__(self, message: str):
        super().__init__(message, status=409)


class ConflictError(StoreError):
    """An update carried a stale resourceVersion."""

    def __init__(self, message: str):
        super().__init__(message, status=409)
