"""
Secret Reconciler — Push source Secret changes out to every replica.

Replicas are discovered by their provenance labels, never through a
stored list of dependents. The label query is a point-in-time snapshot:
a replica created after it ran is picked up on the next source change.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..engine.context import InvocationContext
from ..models.outcome import ReconcileResult
from ..models.resources import KIND_SECRET, NamespacedName, Secret, provenance_labels
from ..observability.metrics import MetricsRegistry
from ..observability.metrics import metrics as default_metrics
from ..store.base import ResourceStore
from ..store.errors import ConflictError, NotFoundError, StoreError

logger = logging.getLogger(__name__)


class CredentialReconciler:
    """Reconciles Secret identities in the source namespace."""

    controller = "secret"

    def __init__(
        self,
        store: ResourceStore,
        source_namespace: str,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.store = store
        self.source_namespace = source_namespace
        self.metrics = metrics or default_metrics

    def discover_replicas(self, source_name: str) -> List[NamespacedName]:
        """List replica identities of ``source_name`` by label. Raises StoreError."""
        items = self.store.list(KIND_SECRET, provenance_labels(source_name))
        return [
            NamespacedName(meta.namespace, meta.name)
            for meta in items
            # The source namespace is never a replication target
            if meta.namespace != self.source_namespace
        ]

    def reconcile(
        self,
        identity: NamespacedName,
        context: Optional[InvocationContext] = None,
    ) -> ReconcileResult:
        context = context or InvocationContext.background()
        key = str(identity)
        logger.debug(f"Received request to reconcile Secret [{key}]")

        if identity.namespace != self.source_namespace:
            logger.debug(f"Skipping reconciliation of Secret [{key}] as it is not from the source namespace")
            return ReconcileResult.skipped(self.controller, key, "not in source namespace")

        context.check()
        try:
            source = self.store.get(KIND_SECRET, identity.namespace, identity.name)
        except NotFoundError as e:
            logger.debug(f"Skipping reconciliation of Secret [{key}] as it no longer exists: {e}")
            return ReconcileResult.skipped(self.controller, key, "not found")
        except StoreError as e:
            error = f"could not fetch the source Secret [{key}]: {e}"
            logger.error(error)
            return ReconcileResult.retry(self.controller, key, error)

        # Skip if this Secret is not a TLS
        if not source.is_tls:
            logger.debug(f"Skipping reconciliation of Secret [{key}] as it is not a TLS Secret")
            return ReconcileResult.skipped(self.controller, key, "not a TLS Secret")

        # Fetch all Secrets that were created from this Secret
        context.check()
        try:
            replicas = self.discover_replicas(identity.name)
        except StoreError as e:
            error = f"could not list Secrets: {e}"
            logger.error(error)
            return ReconcileResult.retry(self.controller, key, error)

        updated: List[str] = []
        failed: List[str] = []

        for target_key in replicas:
            logger.debug(f"Found target Secret [{target_key}] to be copied from source Secret [{key}]")

            if self._refresh(source, target_key, context):
                updated.append(str(target_key))
            else:
                failed.append(str(target_key))

        return ReconcileResult.ok(self.controller, key, updated=updated, failed=failed)

    def _refresh(self, source: Secret, target_key: NamespacedName, context: InvocationContext) -> bool:
        """Copy the source data onto one replica. Store failures are logged, not raised."""
        context.check()
        try:
            target = self.store.get(KIND_SECRET, target_key.namespace, target_key.name)
        except StoreError as e:
            logger.error(f"could not fetch the target Secret [{target_key}]: {e}")
            self.metrics.increment("replication_errors_total", labels={"stage": "get_replica"})
            return False

        # Copy Secret data from source to target
        target.data = dict(source.data)

        context.check()
        try:
            self.store.update(target)
        except ConflictError as e:
            logger.info(f"Target Secret [{target_key}] changed while refreshing it, leaving it for the next change: {e}")
            return False
        except StoreError as e:
            logger.error(f"failed to update target Secret [{target_key}]: {e}")
            self.metrics.increment("replication_errors_total", labels={"stage": "update"})
            return False

        self.metrics.increment("replicas_updated_total")
        logger.info(f"Successfully updated Secret [{target_key}]")
        return True
