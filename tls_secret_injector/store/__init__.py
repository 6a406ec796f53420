"""
Store Module — Resource store contract and backends.
"""

from __future__ import annotations

from typing import Optional

from .base import (
    EVENT_ADDED,
    EVENT_BOOKMARK,
    EVENT_DELETED,
    EVENT_ERROR,
    EVENT_MODIFIED,
    ResourceStore,
    StoredObject,
    WatchEvent,
)
from .errors import AlreadyExistsError, ConflictError, NotFoundError, StoreError
from .memory import InMemoryStore


def create_store(backend: str = "kubernetes", kubeconfig: Optional[str] = None) -> ResourceStore:
    """Build a store backend by name."""
    if backend == "memory":
        return InMemoryStore()
    if backend == "kubernetes":
        from .kube import KubernetesStore, load_api_client

        return KubernetesStore(load_api_client(kubeconfig))
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = [
    "EVENT_ADDED",
    "EVENT_BOOKMARK",
    "EVENT_DELETED",
    "EVENT_ERROR",
    "EVENT_MODIFIED",
    "ResourceStore",
    "StoredObject",
    "WatchEvent",
    "AlreadyExistsError",
    "ConflictError",
    "NotFoundError",
    "StoreError",
    "InMemoryStore",
    "create_store",
]
