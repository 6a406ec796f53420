"""
Kubernetes Store — Resource store backed by the Kubernetes API.

Secrets go through CoreV1Api, Ingresses through NetworkingV1Api.
API exceptions are translated into the store error hierarchy so the
engine never sees a kubernetes-specific exception.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional

import urllib3
from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from ..models.resources import KIND_INGRESS, KIND_SECRET, Ingress, NamespacedName, ObjectMeta, Secret
from .base import EVENT_ADDED, ResourceStore, StoredObject, WatchEvent
from .errors import AlreadyExistsError, ConflictError, NotFoundError, StoreError

logger = logging.getLogger(__name__)

WATCH_TIMEOUT_SECONDS = 60
MAX_WATCH_BACKOFF_SECONDS = 30


def load_api_client(kubeconfig: Optional[str] = None) -> client.ApiClient:
    """Load in-cluster config, falling back to a kubeconfig file."""
    if kubeconfig:
        config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()
    return client.ApiClient()


def _selector(labels: Optional[Dict[str, str]]) -> Optional[str]:
    if not labels:
        return None
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _translate(exc: ApiException, op: str, kind: str, key: str) -> StoreError:
    if exc.status == 404:
        return NotFoundError(f"{kind} [{key}] not found")
    if exc.status == 409 and op == "create":
        return AlreadyExistsError(f"{kind} [{key}] already exists")
    if exc.status == 409:
        return ConflictError(f"{kind} [{key}] was modified concurrently")
    return StoreError(f"{op} {kind} [{key}] failed: {exc.status} {exc.reason}", status=exc.status)


class KubernetesStore(ResourceStore):
    """Store backed by a live cluster."""

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        self.api_client = api_client or load_api_client()
        self.core_api = client.CoreV1Api(self.api_client)
        self.networking_api = client.NetworkingV1Api(self.api_client)

    @property
    def name(self) -> str:
        return "kubernetes"

    def _call(self, op: str, kind: str, key: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except ApiException as e:
            raise _translate(e, op, kind, key) from e
        except urllib3.exceptions.HTTPError as e:
            raise StoreError(f"{op} {kind} [{key}] failed: {e}") from e

    def _to_model(self, kind: str, obj: Any) -> StoredObject:
        data = self.api_client.sanitize_for_serialization(obj)
        if kind == KIND_SECRET:
            return Secret.from_api(data)
        return Ingress.model_validate(data)

    # ── Store contract ────────────────────────────────────────────

    def get(self, kind: str, namespace: str, name: str) -> StoredObject:
        key = f"{namespace}/{name}"
        if kind == KIND_SECRET:
            obj = self._call("get", kind, key, self.core_api.read_namespaced_secret, name, namespace)
        elif kind == KIND_INGRESS:
            obj = self._call("get", kind, key, self.networking_api.read_namespaced_ingress, name, namespace)
        else:
            raise StoreError(f"unsupported kind: {kind}")
        return self._to_model(kind, obj)

    def list(self, kind: str, labels: Optional[Dict[str, str]] = None) -> List[ObjectMeta]:
        selector = _selector(labels)
        result = self._call(
            "list", kind, selector or "*", self._list_fn(kind), label_selector=selector
        )
        return [
            ObjectMeta.model_validate(self.api_client.sanitize_for_serialization(item.metadata))
            for item in result.items
        ]

    def create(self, obj: StoredObject) -> StoredObject:
        if not isinstance(obj, Secret):
            raise StoreError(f"unsupported object type for create: {type(obj).__name__}")

        key = str(obj.key)
        created = self._call(
            "create", KIND_SECRET, key,
            self.core_api.create_namespaced_secret, obj.metadata.namespace, obj.to_api(),
        )
        return self._to_model(KIND_SECRET, created)

    def update(self, obj: StoredObject) -> StoredObject:
        if not isinstance(obj, Secret):
            raise StoreError(f"unsupported object type for update: {type(obj).__name__}")

        key = str(obj.key)
        updated = self._call(
            "update", KIND_SECRET, key,
            self.core_api.replace_namespaced_secret,
            obj.metadata.name, obj.metadata.namespace, obj.to_api(),
        )
        return self._to_model(KIND_SECRET, updated)

    def watch(self, kind: str, stop: threading.Event) -> Iterator[WatchEvent]:
        """
        List then watch ``kind`` across all namespaces.

        Re-lists when the resourceVersion expires (410 Gone) and backs
        off with jitter on transient API errors.
        """
        list_fn = self._list_fn(kind)
        resource_version: Optional[str] = None
        backoff_seconds = 1

        while not stop.is_set():
            if resource_version is None:
                try:
                    initial = list_fn()
                except (ApiException, urllib3.exceptions.HTTPError):
                    logger.exception(f"Initial {kind} list failed")
                    stop.wait(timeout=backoff_seconds * (0.5 + random.random()))
                    backoff_seconds = min(backoff_seconds * 2, MAX_WATCH_BACKOFF_SECONDS)
                    continue

                resource_version = initial.metadata.resource_version
                for item in initial.items:
                    yield WatchEvent(
                        EVENT_ADDED, kind,
                        NamespacedName(item.metadata.namespace, item.metadata.name),
                    )
                logger.info(f"Starting {kind} watch from resourceVersion {resource_version}")

            watcher = watch.Watch()
            try:
                for event in watcher.stream(
                    list_fn,
                    resource_version=resource_version,
                    timeout_seconds=WATCH_TIMEOUT_SECONDS,
                ):
                    if stop.is_set():
                        break

                    obj = event.get("object")
                    metadata = getattr(obj, "metadata", None)
                    if metadata is None:
                        continue
                    if metadata.resource_version:
                        resource_version = metadata.resource_version

                    yield WatchEvent(
                        str(event.get("type", "")), kind,
                        NamespacedName(metadata.namespace, metadata.name),
                    )
                backoff_seconds = 1
            except ApiException as e:
                if e.status == 410:
                    logger.warning(f"{kind} watch resource version expired, re-listing")
                    resource_version = None
                    continue
                logger.exception(f"{kind} watch error")
                stop.wait(timeout=backoff_seconds * (0.5 + random.random()))
                backoff_seconds = min(backoff_seconds * 2, MAX_WATCH_BACKOFF_SECONDS)
            except urllib3.exceptions.HTTPError:
                logger.exception(f"{kind} watch connection error")
                stop.wait(timeout=backoff_seconds * (0.5 + random.random()))
                backoff_seconds = min(backoff_seconds * 2, MAX_WATCH_BACKOFF_SECONDS)
            finally:
                watcher.stop()

    def ping(self) -> None:
        self._call("ping", "", "", client.VersionApi(self.api_client).get_code)

    def _list_fn(self, kind: str) -> Callable[..., Any]:
        if kind == KIND_SECRET:
            return self.core_api.list_secret_for_all_namespaces
        if kind == KIND_INGRESS:
            return self.networking_api.list_ingress_for_all_namespaces
        raise StoreError(f"unsupported kind: {kind}")
