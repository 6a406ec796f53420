"""
Declaration Interceptor — Replicate Secrets while an Ingress is admitted.

Invoked synchronously by the admission webhook before the Ingress is
persisted. Replication here is best-effort acceleration: the write is
always allowed unless the Ingress itself cannot be decoded.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Any, List, Optional

from pydantic import ValidationError

from ..engine.context import InvocationContext
from ..engine.errors import InvalidDeclarationError, InvocationCancelled
from ..engine.replication import ReplicationEngine
from ..models.admission import AdmissionRequest, AdmissionResponse
from ..models.resources import KIND_INGRESS, Ingress
from ..observability.metrics import MetricsRegistry
from ..observability.metrics import metrics as default_metrics

logger = logging.getLogger(__name__)


def decode_ingress(raw: Any) -> Ingress:
    """
    Decode the raw admission object into an Ingress.

    Raises:
        InvalidDeclarationError: the payload is missing, not JSON, not an
            Ingress, or fails schema validation
    """
    if raw is None or raw == "" or raw == {}:
        raise InvalidDeclarationError("there is no content to decode")

    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidDeclarationError(f"invalid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise InvalidDeclarationError(f"expected an object, got {type(raw).__name__}")

    kind = raw.get("kind")
    if kind and kind != KIND_INGRESS:
        raise InvalidDeclarationError(f"expected kind {KIND_INGRESS}, got {kind}")

    try:
        return Ingress.model_validate(raw)
    except ValidationError as e:
        raise InvalidDeclarationError(str(e)) from e


def format_created(created: List[str]) -> str:
    return "[" + " ".join(created) + "]"


class DeclarationInterceptor:
    """Admission-time entry point for Ingress writes."""

    def __init__(
        self,
        engine: ReplicationEngine,
        source_namespace: str,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.engine = engine
        self.source_namespace = source_namespace
        self.metrics = metrics or default_metrics

    def intercept(
        self,
        request: AdmissionRequest,
        context: Optional[InvocationContext] = None,
    ) -> AdmissionResponse:
        """Decide on one intercepted Ingress write."""
        response = self._decide(request, context or InvocationContext.background())
        response.uid = request.uid
        self.metrics.increment(
            "admission_requests_total",
            labels={"allowed": str(response.allowed).lower()},
        )
        return response

    def _decide(self, request: AdmissionRequest, context: InvocationContext) -> AdmissionResponse:
        identity = f"{request.namespace}/{request.name}"
        logger.debug(f"Received request to mutate Ingress [{identity}]")

        # Check if the request is the same as the source
        if request.namespace == self.source_namespace:
            reason = f"Skipping mutation of Ingress [{identity}] from the same namespace as the source"
            logger.debug(reason)
            return AdmissionResponse.allow(reason)

        try:
            ingress = decode_ingress(request.object)
        except InvalidDeclarationError as e:
            message = f"failed to decode Ingress [{identity}]: {e}"
            logger.error(message)
            return AdmissionResponse.errored(int(HTTPStatus.BAD_REQUEST), message)

        try:
            created = self.engine.ensure_replicas(
                ingress, self.source_namespace, request.namespace, context
            )
        except InvocationCancelled as e:
            logger.warning(f"Replication for Ingress [{identity}] interrupted: {e}")
            if e.created:
                return AdmissionResponse.allow(
                    f"Replication interrupted after creating Secrets {format_created(e.created)}"
                )
            return AdmissionResponse.allow(f"Replication interrupted: {e}")

        if not created:
            return AdmissionResponse.allow("No new Secrets created")

        return AdmissionResponse.allow(f"Successfully created Secrets {format_created(created)}")
