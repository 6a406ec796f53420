"""
Admission Models — The admission.k8s.io/v1 AdmissionReview envelope.

The API server posts an AdmissionReview holding a request; we answer
with the same envelope holding a response that echoes the request uid.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"


class GroupVersionKind(BaseModel):
    group: str = ""
    version: str = ""
    kind: str = ""


class AdmissionRequest(BaseModel):
    """The part of an AdmissionReview request the interceptor needs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uid: str
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    namespace: str = ""
    name: str = ""
    operation: str = ""
    # Raw object left undecoded so a malformed Ingress is reported by the
    # interceptor rather than by envelope parsing
    object: Any = None


class AdmissionStatus(BaseModel):
    """Mirrors metav1.Status as used in admission responses."""

    code: int = 200
    reason: str = ""
    message: str = ""


class AdmissionResponse(BaseModel):
    """
    Decision returned for an intercepted write.

    ``uid`` is filled in by the transport, which knows the request.
    """

    uid: str = ""
    allowed: bool
    status: AdmissionStatus = Field(default_factory=AdmissionStatus)

    @property
    def reason(self) -> str:
        return self.status.reason

    @classmethod
    def allow(cls, reason: str) -> "AdmissionResponse":
        """Allow the write, explaining what was done."""
        return cls(allowed=True, status=AdmissionStatus(code=200, reason=reason))

    @classmethod
    def errored(cls, code: int, message: str) -> "AdmissionResponse":
        """Reject the write because the request itself could not be handled."""
        return cls(allowed=False, status=AdmissionStatus(code=code, message=message))

    def to_review(self, api_version: str = ADMISSION_API_VERSION) -> Dict[str, Any]:
        """Wrap into an AdmissionReview dict for the HTTP response."""
        status: Dict[str, Any] = {"code": self.status.code}
        if self.status.reason:
            status["reason"] = self.status.reason
        if self.status.message:
            status["message"] = self.status.message

        return {
            "apiVersion": api_version,
            "kind": ADMISSION_KIND,
            "response": {
                "uid": self.uid,
                "allowed": self.allowed,
                "status": status,
            },
        }


class AdmissionReview(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(default=ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = ADMISSION_KIND
    request: Optional[AdmissionRequest] = None
