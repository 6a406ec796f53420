"""
In-Memory Store — A non-networked store for tests and dry runs.

Behaves like the API server where it matters to the injector:
objects are copied in and out, every write bumps a resourceVersion,
updates with a stale resourceVersion conflict, and watchers receive
ADDED/MODIFIED/DELETED events.

Failures can be injected per operation to exercise error paths:

    store.inject_error("get", "Secret", "source/tls-example-io", StoreError("boom"))
"""

from __future__ import annotations

import queue
import threading
from typing import Dict, Iterator, List, Optional, Tuple

from ..models.resources import KIND_INGRESS, KIND_SECRET, Ingress, NamespacedName, ObjectMeta, Secret
from .base import (
    EVENT_ADDED,
    EVENT_DELETED,
    EVENT_MODIFIED,
    ResourceStore,
    StoredObject,
    WatchEvent,
)
from .errors import AlreadyExistsError, ConflictError, NotFoundError, StoreError


def _kind_of(obj: StoredObject) -> str:
    if isinstance(obj, Secret):
        return KIND_SECRET
    if isinstance(obj, Ingress):
        return KIND_INGRESS
    raise StoreError(f"unsupported object type: {type(obj).__name__}")


class InMemoryStore(ResourceStore):
    """
    Thread-safe dictionary-backed store.

    ``calls`` records every operation as ``(op, kind, key)`` so tests can
    assert that nothing was written or queried.
    """

    def __init__(self, objects: Optional[List[StoredObject]] = None):
        self._objects: Dict[Tuple[str, str, str], StoredObject] = {}
        self._version = 0
        self._lock = threading.Lock()
        self._watchers: Dict[str, List[queue.Queue]] = {}
        self._errors: Dict[Tuple[str, str, Optional[str]], StoreError] = {}
        self.calls: List[Tuple[str, str, str]] = []

        for obj in objects or []:
            self.create(obj)
        self.calls.clear()

    @property
    def name(self) -> str:
        return "memory"

    # ── Failure injection ─────────────────────────────────────────

    def inject_error(
        self,
        op: str,
        kind: str,
        key: Optional[str] = None,
        error: Optional[StoreError] = None,
    ) -> None:
        """Make ``op`` on ``kind`` (optionally only for ``key``) raise ``error``."""
        self._errors[(op, kind, key)] = error or StoreError(f"injected {op} failure")

    def clear_errors(self) -> None:
        self._errors.clear()

    def _maybe_fail(self, op: str, kind: str, key: str) -> None:
        self.calls.append((op, kind, key))
        error = self._errors.get((op, kind, key)) or self._errors.get((op, kind, None))
        if error is not None:
            raise error

    # ── Store contract ────────────────────────────────────────────

    def get(self, kind: str, namespace: str, name: str) -> StoredObject:
        key = NamespacedName(namespace, name)
        self._maybe_fail("get", kind, str(key))

        with self._lock:
            obj = self._objects.get((kind, namespace, name))
            if obj is None:
                raise NotFoundError(f'{kind.lower()}s "{name}" not found')
            return obj.model_copy(deep=True)

    def list(self, kind: str, labels: Optional[Dict[str, str]] = None) -> List[ObjectMeta]:
        selector = ",".join(f"{k}={v}" for k, v in sorted((labels or {}).items()))
        self._maybe_fail("list", kind, selector)

        with self._lock:
            items = [
                obj.metadata.model_copy(deep=True)
                for (obj_kind, _, _), obj in sorted(self._objects.items())
                if obj_kind == kind
                and all(obj.metadata.labels.get(k) == v for k, v in (labels or {}).items())
            ]
        return items

    def create(self, obj: StoredObject) -> StoredObject:
        kind = _kind_of(obj)
        meta = obj.metadata
        self._maybe_fail("create", kind, f"{meta.namespace}/{meta.name}")

        with self._lock:
            slot = (kind, meta.namespace, meta.name)
            if slot in self._objects:
                raise AlreadyExistsError(f'{kind.lower()}s "{meta.name}" already exists')

            stored = obj.model_copy(deep=True)
            stored.metadata.resource_version = self._next_version()
            self._objects[slot] = stored
            self._notify(kind, EVENT_ADDED, stored)
            return stored.model_copy(deep=True)

    def update(self, obj: StoredObject) -> StoredObject:
        kind = _kind_of(obj)
        meta = obj.metadata
        self._maybe_fail("update", kind, f"{meta.namespace}/{meta.name}")

        with self._lock:
            slot = (kind, meta.namespace, meta.name)
            current = self._objects.get(slot)
            if current is None:
                raise NotFoundError(f'{kind.lower()}s "{meta.name}" not found')
            if meta.resource_version and meta.resource_version != current.metadata.resource_version:
                raise ConflictError(
                    f'Operation cannot be fulfilled on {kind.lower()}s "{meta.name}": '
                    "the object has been modified; please apply your changes to the latest version"
                )

            stored = obj.model_copy(deep=True)
            stored.metadata.resource_version = self._next_version()
            self._objects[slot] = stored
            self._notify(kind, EVENT_MODIFIED, stored)
            return stored.model_copy(deep=True)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        """Remove an object. Not part of the injector's contract; tests use it."""
        with self._lock:
            obj = self._objects.pop((kind, namespace, name), None)
            if obj is None:
                raise NotFoundError(f'{kind.lower()}s "{name}" not found')
            self._notify(kind, EVENT_DELETED, obj)

    def watch(self, kind: str, stop: threading.Event) -> Iterator[WatchEvent]:
        events: queue.Queue = queue.Queue()

        with self._lock:
            for (obj_kind, namespace, name) in sorted(self._objects):
                if obj_kind == kind:
                    events.put(WatchEvent(EVENT_ADDED, kind, NamespacedName(namespace, name)))
            self._watchers.setdefault(kind, []).append(events)

        try:
            while not stop.is_set():
                try:
                    yield events.get(timeout=0.05)
                except queue.Empty:
                    continue
        finally:
            with self._lock:
                self._watchers[kind].remove(events)

    def ping(self) -> None:
        self._maybe_fail("ping", "", "")

    # ── Internals ─────────────────────────────────────────────────

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _notify(self, kind: str, event_type: str, obj: StoredObject) -> None:
        key = NamespacedName(obj.metadata.namespace, obj.metadata.name)
        for events in self._watchers.get(kind, []):
            events.put(WatchEvent(event_type, kind, key))
