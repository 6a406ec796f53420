"""
Replication Engine — Make sure every Secret an Ingress needs exists locally.

For each TLS binding of an Ingress the engine:
1. Looks the Secret up in the target namespace (present → done)
2. Fetches the Secret of the same name from the source namespace
3. Creates a copy in the target namespace with provenance labels
4. Treats "already exists" on create as a lost race, not an error

## Design Principles

- **Idempotency**: get-before-create plus a benign AlreadyExists make
  repeated and concurrent calls for one Ingress converge on one replica
- **Isolation**: a failure on one binding never stops the others
- **Statelessness**: nothing is cached between calls; the store is the
  only shared state

## Usage

    from tls_secret_injector.engine.replication import ReplicationEngine

    engine = ReplicationEngine(store)
    created = engine.ensure_replicas(ingress, "source", "target")
    # ["target/tls-example-io"]
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..models.resources import (
    KIND_SECRET,
    Ingress,
    NamespacedName,
    ObjectMeta,
    Secret,
    provenance_labels,
)
from ..observability.metrics import MetricsRegistry
from ..observability.metrics import metrics as default_metrics
from ..store.base import ResourceStore
from ..store.errors import AlreadyExistsError, NotFoundError, StoreError
from .context import InvocationContext
from .errors import InvalidDeclarationError, InvocationCancelled

logger = logging.getLogger(__name__)


def build_replica(source: Secret, target_namespace: str) -> Secret:
    """Copy ``source`` into ``target_namespace`` with provenance labels."""
    return Secret(
        metadata=ObjectMeta(
            namespace=target_namespace,
            name=source.metadata.name,
            labels=provenance_labels(source.metadata.name),
        ),
        type=source.type,
        data=dict(source.data),
    )


class ReplicationEngine:
    """Creates missing replica Secrets for Ingress TLS bindings."""

    def __init__(self, store: ResourceStore, metrics: Optional[MetricsRegistry] = None):
        self.store = store
        self.metrics = metrics or default_metrics

    def ensure_replicas(
        self,
        declaration: Ingress,
        source_namespace: str,
        target_namespace: str,
        context: Optional[InvocationContext] = None,
    ) -> List[str]:
        """
        Create every replica the declaration needs and does not have yet.

        Args:
            declaration: The Ingress whose TLS bindings are inspected
            source_namespace: Namespace holding the authoritative Secrets
            target_namespace: Namespace the replicas are created in

        Returns:
            "namespace/name" of each Secret actually created, in binding order

        Raises:
            InvalidDeclarationError: declaration is not an Ingress
            InvocationCancelled: the context was cancelled mid-way
        """
        if not isinstance(declaration, Ingress):
            raise InvalidDeclarationError(
                f"expected an Ingress, got {type(declaration).__name__}"
            )

        context = context or InvocationContext.background()
        created: List[str] = []

        for binding in declaration.spec.tls:
            if not binding.secret_name:
                logger.debug(
                    f"Skipping TLS binding without a Secret for Hosts {binding.hosts} "
                    f"in Ingress [{declaration.key}]"
                )
                continue

            logger.debug(f"Found usage of Secret [{binding.secret_name}] for Hosts {binding.hosts}")

            try:
                target = self._replicate(binding.secret_name, source_namespace, target_namespace, context)
            except InvocationCancelled as e:
                e.created = created + e.created
                raise

            if target is not None:
                created.append(str(target))

        return created

    def _replicate(
        self,
        secret_name: str,
        source_namespace: str,
        target_namespace: str,
        context: InvocationContext,
    ) -> Optional[NamespacedName]:
        """Handle one binding. Returns the target key only if it was created."""
        target_key = NamespacedName(target_namespace, secret_name)

        # Check if we need to create the target Secret
        context.check()
        try:
            self.store.get(KIND_SECRET, target_key.namespace, target_key.name)
            logger.debug(f"Skipping creation of the target Secret [{target_key}] as it already exists")
            return None
        except NotFoundError:
            pass
        except StoreError as e:
            logger.error(f"could not check for the target Secret [{target_key}]: {e}")
            self.metrics.increment("replication_errors_total", labels={"stage": "get_target"})
            return None

        # Fetch the source Secret
        source_key = NamespacedName(source_namespace, secret_name)
        context.check()
        try:
            source = self.store.get(KIND_SECRET, source_key.namespace, source_key.name)
        except StoreError as e:
            logger.error(f"could not fetch the source Secret [{source_key}]: {e}")
            self.metrics.increment("replication_errors_total", labels={"stage": "get_source"})
            return None

        replica = build_replica(source, target_namespace)

        context.check()
        try:
            self.store.create(replica)
        except AlreadyExistsError:
            # Another trigger for an Ingress using the same Secret got there
            # between our get and create
            logger.debug(f"Skipping creation of the target Secret [{target_key}] as it already exists")
            return None
        except StoreError as e:
            logger.error(f"failed to create the target Secret [{target_key}]: {e}")
            self.metrics.increment("replication_errors_total", labels={"stage": "create"})
            return None

        self.metrics.increment("replicas_created_total")
        logger.info(f"Successfully created Secret [{target_key}]")
        return target_key
