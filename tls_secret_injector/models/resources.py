"""
Resource Models — Pydantic schemas for the Kubernetes objects we touch.

Only the fields the injector reads or writes are modelled. Secrets and
object metadata carry everything else along as extras so writes keep it.

Secrets keep their ``data`` as raw bytes in memory. The Kubernetes API
carries them base64-encoded, so use ``Secret.from_api()`` and
``Secret.to_api()`` at the wire boundary instead of plain pydantic
validation.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Secret classification eligible for replication
SECRET_TYPE_TLS = "kubernetes.io/tls"
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY_KEY = "tls.key"

# Provenance labels attached to every replica
APP_NAME = "tls-secret-injector"
IDENTITY_LABEL = "app.kubernetes.io/name"
SOURCE_NAME_LABEL = "tls-secret-injector/source-name"

KIND_SECRET = "Secret"
KIND_INGRESS = "Ingress"


@dataclass(frozen=True)
class NamespacedName:
    """Identity of a namespaced object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def provenance_labels(source_name: str) -> Dict[str, str]:
    """Labels that mark a Secret as a replica of ``source_name``."""
    return {
        IDENTITY_LABEL: APP_NAME,
        SOURCE_NAME_LABEL: source_name,
    }


class ObjectMeta(BaseModel):
    """
    Subset of Kubernetes object metadata.

    Fields the injector does not own (annotations, finalizers,
    ownerReferences and the like) are kept as extras under their wire
    names so that a fetched object can be written back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = ""
    namespace: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")

    @field_validator("labels", mode="before")
    @classmethod
    def _null_labels(cls, value: Any) -> Any:
        return value or {}

    def to_api(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = dict(self.model_extra or {})
        metadata["name"] = self.name
        metadata["namespace"] = self.namespace
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        return metadata


class Secret(BaseModel):
    """A core/v1 Secret. Unmodelled top-level fields such as ``immutable`` are kept as extras."""

    model_config = ConfigDict(extra="allow")

    metadata: ObjectMeta
    type: str = "Opaque"
    data: Dict[str, bytes] = Field(default_factory=dict)

    @property
    def key(self) -> NamespacedName:
        return NamespacedName(self.metadata.namespace, self.metadata.name)

    @property
    def is_tls(self) -> bool:
        return self.type == SECRET_TYPE_TLS

    @classmethod
    def from_api(cls, obj: Dict[str, Any]) -> "Secret":
        """Build from an API dict whose ``data`` values are base64 strings."""
        raw = obj.get("data") or {}
        extras = {k: v for k, v in obj.items() if k not in ("metadata", "type", "data")}
        return cls(
            metadata=ObjectMeta.model_validate(obj.get("metadata") or {}),
            type=obj.get("type") or "Opaque",
            data={k: base64.b64decode(v) for k, v in raw.items()},
            **extras,
        )

    def to_api(self) -> Dict[str, Any]:
        """Serialize to an API dict with base64-encoded ``data``."""
        body: Dict[str, Any] = dict(self.model_extra or {})
        body.update({
            "apiVersion": "v1",
            "kind": KIND_SECRET,
            "metadata": self.metadata.to_api(),
            "type": self.type,
            "data": {k: base64.b64encode(v).decode("ascii") for k, v in self.data.items()},
        })
        return body


class IngressTLS(BaseModel):
    """One TLS binding of an Ingress: a Secret name backing some hosts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    secret_name: str = Field(default="", alias="secretName")
    hosts: List[str] = Field(default_factory=list)

    @field_validator("secret_name", "hosts", mode="before")
    @classmethod
    def _null_fields(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return "" if info.field_name == "secret_name" else []
        return value


class IngressSpec(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tls: List[IngressTLS] = Field(default_factory=list)

    @field_validator("tls", mode="before")
    @classmethod
    def _null_tls(cls, value: Any) -> Any:
        return [] if value is None else value


class Ingress(BaseModel):
    """A networking.k8s.io/v1 Ingress, reduced to its TLS bindings."""

    model_config = ConfigDict(extra="ignore")

    metadata: ObjectMeta
    spec: IngressSpec = Field(default_factory=IngressSpec)

    @property
    def key(self) -> NamespacedName:
        return NamespacedName(self.metadata.namespace, self.metadata.name)
