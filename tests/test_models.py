"""
Tests for resource, admission and outcome models.
"""

from tls_secret_injector.models.admission import AdmissionResponse, AdmissionReview
from tls_secret_injector.models.outcome import ReconcileResult
from tls_secret_injector.models.resources import (
    Ingress,
    NamespacedName,
    ObjectMeta,
    Secret,
    provenance_labels,
)


class TestSecret:
    """Tests for the Secret model."""

    def test_from_api_decodes_base64(self):
        secret = Secret.from_api({
            "metadata": {"namespace": "source", "name": "tls", "labels": None, "resourceVersion": "3"},
            "type": "kubernetes.io/tls",
            "data": {"tls.crt": "Y2VydA=="},
        })

        assert secret.data == {"tls.crt": b"cert"}
        assert secret.metadata.labels == {}
        assert secret.metadata.resource_version == "3"
        assert secret.key == NamespacedName("source", "tls")

    def test_from_api_without_data(self):
        secret = Secret.from_api({"metadata": {"namespace": "a", "name": "b"}, "type": None, "data": None})

        assert secret.data == {}
        assert secret.type == "Opaque"
        assert not secret.is_tls

    def test_to_api_omits_empty_metadata(self):
        secret = Secret(metadata=ObjectMeta(namespace="a", name="b"), data={"k": b"v"})

        body = secret.to_api()

        assert body["apiVersion"] == "v1"
        assert body["metadata"] == {"name": "b", "namespace": "a"}
        assert body["data"] == {"k": "dg=="}

    def test_unmodelled_fields_round_trip(self):
        secret = Secret.from_api({
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "namespace": "target",
                "name": "tls",
                "resourceVersion": "5",
                "annotations": {"team.example.io/owner": "payments"},
                "ownerReferences": [{"kind": "Certificate", "name": "tls", "uid": "u1"}],
            },
            "type": "kubernetes.io/tls",
            "immutable": False,
            "data": {"tls.crt": "Y2VydA=="},
        })
        secret.data = {"tls.crt": b"renewed"}

        body = secret.to_api()

        assert body["immutable"] is False
        assert body["metadata"]["annotations"] == {"team.example.io/owner": "payments"}
        assert body["metadata"]["ownerReferences"][0]["kind"] == "Certificate"
        assert body["metadata"]["resourceVersion"] == "5"
        assert body["data"] == {"tls.crt": "cmVuZXdlZA=="}


class TestIngress:
    """Tests for the Ingress model."""

    def test_null_fields_become_empty(self):
        ingress = Ingress.model_validate({
            "metadata": {"namespace": "t", "name": "i"},
            "spec": {"tls": [{"secretName": None, "hosts": None}]},
        })

        assert ingress.spec.tls[0].secret_name == ""
        assert ingress.spec.tls[0].hosts == []

    def test_missing_spec(self):
        ingress = Ingress.model_validate({"metadata": {"namespace": "t", "name": "i"}})

        assert ingress.spec.tls == []


def test_provenance_labels():
    assert provenance_labels("tls-example-io") == {
        "app.kubernetes.io/name": "tls-secret-injector",
        "tls-secret-injector/source-name": "tls-example-io",
    }


class TestAdmission:
    """Tests for the AdmissionReview envelope."""

    def test_parse_review(self):
        review = AdmissionReview.model_validate({
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "request": {"uid": "abc", "namespace": "t", "name": "i", "object": {"kind": "Ingress"}},
        })

        assert review.request.uid == "abc"
        assert review.request.object == {"kind": "Ingress"}

    def test_allow_to_review(self):
        response = AdmissionResponse.allow("done")
        response.uid = "abc"

        assert response.to_review() == {
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "response": {"uid": "abc", "allowed": True, "status": {"code": 200, "reason": "done"}},
        }

    def test_errored_to_review(self):
        review = AdmissionResponse.errored(400, "bad").to_review()

        assert review["response"]["allowed"] is False
        assert review["response"]["status"] == {"code": 400, "message": "bad"}


class TestReconcileResult:
    """Tests for ReconcileResult."""

    def test_only_retry_is_retryable(self):
        assert ReconcileResult.retry("secret", "a/b", "boom").retryable
        assert not ReconcileResult.ok("secret", "a/b").retryable
        assert not ReconcileResult.skipped("secret", "a/b", "why").retryable

    def test_ok_lists(self):
        result = ReconcileResult.ok("secret", "a/b", updated=["x/b"], failed=["y/b"])

        assert result.updated == ["x/b"]
        assert result.failed == ["y/b"]
        assert result.created == []
