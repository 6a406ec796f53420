"""
Resource Store Base Class — Interface for all store backends.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Union

from ..models.resources import IDENTITY_LABEL, KIND_SECRET, Ingress, NamespacedName, ObjectMeta, Secret

StoredObject = Union[Secret, Ingress]

# Watch event types as reported by the API server
EVENT_ADDED = "ADDED"
EVENT_MODIFIED = "MODIFIED"
EVENT_DELETED = "DELETED"
EVENT_BOOKMARK = "BOOKMARK"
EVENT_ERROR = "ERROR"


@dataclass(frozen=True)
class WatchEvent:
    """A change notification for one object identity."""

    type: str
    kind: str
    key: NamespacedName


class ResourceStore(ABC):
    """
    Abstract base class for resource stores.

    Backends signal outcomes with the exceptions in ``store.errors``:
    ``get`` raises ``NotFoundError``, ``create`` raises
    ``AlreadyExistsError``, ``update`` raises ``ConflictError``, and any
    other failure is a ``StoreError``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g., 'kubernetes', 'memory')."""
        pass

    @abstractmethod
    def get(self, kind: str, namespace: str, name: str) -> StoredObject:
        """Fetch one object by key."""
        pass

    @abstractmethod
    def list(self, kind: str, labels: Optional[Dict[str, str]] = None) -> List[ObjectMeta]:
        """
        List object metadata across all namespaces.

        Every pair in ``labels`` must match. ``None`` lists everything.
        """
        pass

    @abstractmethod
    def create(self, obj: StoredObject) -> StoredObject:
        """Create an object and return it as stored."""
        pass

    @abstractmethod
    def update(self, obj: StoredObject) -> StoredObject:
        """Replace an object and return it as stored."""
        pass

    @abstractmethod
    def watch(self, kind: str, stop: threading.Event) -> Iterator[WatchEvent]:
        """
        Yield change events for ``kind`` until ``stop`` is set.

        Existing objects are reported as ADDED first.
        """
        pass

    def ping(self) -> None:
        """Raise ``StoreError`` if the backend is unreachable."""
        self.list(KIND_SECRET, {IDENTITY_LABEL: "__ping__"})
