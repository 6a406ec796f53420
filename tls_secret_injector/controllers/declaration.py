"""
Ingress Reconciler — Catch-up path for replica creation.

Runs the replication engine for an Ingress identity whenever the watch
reports it. Covers Ingresses that existed before the webhook was
installed, writes the webhook never saw, and bindings the engine skipped
earlier because the source Secret was missing at the time.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..engine.context import InvocationContext
from ..engine.replication import ReplicationEngine
from ..models.outcome import ReconcileResult
from ..models.resources import KIND_INGRESS, NamespacedName
from ..store.base import ResourceStore
from ..store.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)


class DeclarationReconciler:
    """Reconciles Ingress identities."""

    controller = "ingress"

    def __init__(self, store: ResourceStore, engine: ReplicationEngine, source_namespace: str):
        self.store = store
        self.engine = engine
        self.source_namespace = source_namespace

    def reconcile(
        self,
        identity: NamespacedName,
        context: Optional[InvocationContext] = None,
    ) -> ReconcileResult:
        context = context or InvocationContext.background()
        key = str(identity)
        logger.debug(f"Received request to reconcile Ingress [{key}]")

        # Check if the request is the same as the source
        if identity.namespace == self.source_namespace:
            logger.debug(f"Skipping mutation of Ingress [{key}] from the same namespace as the source")
            return ReconcileResult.skipped(self.controller, key, "source namespace")

        context.check()
        try:
            ingress = self.store.get(KIND_INGRESS, identity.namespace, identity.name)
        except NotFoundError as e:
            logger.debug(f"Skipping reconciliation of Ingress [{key}] as it no longer exists: {e}")
            return ReconcileResult.skipped(self.controller, key, "not found")
        except StoreError as e:
            error = f"could not fetch the Ingress [{key}]: {e}"
            logger.error(error)
            return ReconcileResult.retry(self.controller, key, error)

        # Create new Secrets by copying Secrets from the source namespace
        created = self.engine.ensure_replicas(
            ingress, self.source_namespace, identity.namespace, context
        )
        return ReconcileResult.ok(self.controller, key, created=created)
