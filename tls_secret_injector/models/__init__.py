"""
Models — Resource, admission and reconcile-result schemas.
"""

from .admission import AdmissionRequest, AdmissionResponse, AdmissionReview
from .outcome import ReconcileResult
from .resources import (
    APP_NAME,
    IDENTITY_LABEL,
    KIND_INGRESS,
    KIND_SECRET,
    SECRET_TYPE_TLS,
    SOURCE_NAME_LABEL,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    Ingress,
    IngressSpec,
    IngressTLS,
    NamespacedName,
    ObjectMeta,
    Secret,
    provenance_labels,
)

__all__ = [
    "AdmissionRequest",
    "AdmissionResponse",
    "AdmissionReview",
    "ReconcileResult",
    "APP_NAME",
    "IDENTITY_LABEL",
    "KIND_INGRESS",
    "KIND_SECRET",
    "SECRET_TYPE_TLS",
    "SOURCE_NAME_LABEL",
    "TLS_CERT_KEY",
    "TLS_PRIVATE_KEY_KEY",
    "Ingress",
    "IngressSpec",
    "IngressTLS",
    "NamespacedName",
    "ObjectMeta",
    "Secret",
    "provenance_labels",
]
