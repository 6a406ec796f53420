"""
Shared fixtures for injector tests.

Provides an InMemoryStore seeded with one TLS Secret in the source
namespace, a fresh metrics registry per test, and helpers to build
Secrets and Ingresses without repeating their boilerplate.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from tls_secret_injector.engine.replication import ReplicationEngine
from tls_secret_injector.models.resources import (
    SECRET_TYPE_TLS,
    Ingress,
    IngressSpec,
    IngressTLS,
    ObjectMeta,
    Secret,
)
from tls_secret_injector.observability.metrics import MetricsRegistry
from tls_secret_injector.store.memory import InMemoryStore

SOURCE_NAMESPACE = "source"
TARGET_NAMESPACE = "target"
SECRET_NAME = "tls-example-io"

TLS_DATA = {"tls.crt": b"certificate", "tls.key": b"private-key"}


def make_secret(
    namespace: str = SOURCE_NAMESPACE,
    name: str = SECRET_NAME,
    type: str = SECRET_TYPE_TLS,
    data: Optional[Dict[str, bytes]] = None,
    labels: Optional[Dict[str, str]] = None,
) -> Secret:
    return Secret(
        metadata=ObjectMeta(namespace=namespace, name=name, labels=labels or {}),
        type=type,
        data=dict(TLS_DATA if data is None else data),
    )


def make_ingress(
    namespace: str = TARGET_NAMESPACE,
    name: str = "example",
    secret_names: Optional[List[str]] = None,
) -> Ingress:
    names = [SECRET_NAME] if secret_names is None else secret_names
    return Ingress(
        metadata=ObjectMeta(namespace=namespace, name=name),
        spec=IngressSpec(tls=[IngressTLS(secret_name=n, hosts=[f"{n}.example.io"]) for n in names]),
    )


def ingress_payload(
    namespace: str = TARGET_NAMESPACE,
    name: str = "example",
    secret_names: Optional[List[str]] = None,
) -> dict:
    """An Ingress as the API server sends it in an AdmissionReview."""
    names = [SECRET_NAME] if secret_names is None else secret_names
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "Ingress",
        "metadata": {"namespace": namespace, "name": name},
        "spec": {
            "rules": [{"host": f"{n}.example.io"} for n in names],
            "tls": [{"secretName": n, "hosts": [f"{n}.example.io"]} for n in names],
        },
    }


@pytest.fixture
def source_secret() -> Secret:
    return make_secret()


@pytest.fixture
def store(source_secret) -> InMemoryStore:
    """Store holding the source TLS Secret."""
    return InMemoryStore([source_secret])


@pytest.fixture
def registry() -> MetricsRegistry:
    """Fresh metrics registry, isolated from the global one."""
    return MetricsRegistry()


@pytest.fixture
def engine(store, registry) -> ReplicationEngine:
    return ReplicationEngine(store, registry)
