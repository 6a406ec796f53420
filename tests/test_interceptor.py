"""
Tests for the Declaration Interceptor and Ingress decoding.
"""

import json

import pytest

from conftest import SECRET_NAME, SOURCE_NAMESPACE, TARGET_NAMESPACE, ingress_payload, make_secret
from tls_secret_injector.admission.interceptor import DeclarationInterceptor, decode_ingress, format_created
from tls_secret_injector.engine.context import InvocationContext
from tls_secret_injector.engine.errors import InvalidDeclarationError
from tls_secret_injector.models.admission import AdmissionRequest
from tls_secret_injector.models.resources import KIND_SECRET


def make_request(namespace=TARGET_NAMESPACE, name="example", obj=None, uid="req-1"):
    return AdmissionRequest(
        uid=uid,
        namespace=namespace,
        name=name,
        operation="CREATE",
        object=ingress_payload(namespace, name) if obj is None else obj,
    )


@pytest.fixture
def interceptor(engine, registry):
    return DeclarationInterceptor(engine, SOURCE_NAMESPACE, registry)


class TestDecodeIngress:
    """Tests for decode_ingress."""

    def test_decodes_dict(self):
        ingress = decode_ingress(ingress_payload())

        assert ingress.metadata.namespace == TARGET_NAMESPACE
        assert [t.secret_name for t in ingress.spec.tls] == [SECRET_NAME]

    def test_decodes_json_bytes(self):
        ingress = decode_ingress(json.dumps(ingress_payload()).encode())

        assert ingress.spec.tls[0].hosts == [f"{SECRET_NAME}.example.io"]

    def test_null_tls_means_no_bindings(self):
        payload = ingress_payload()
        payload["spec"]["tls"] = None

        assert decode_ingress(payload).spec.tls == []

    @pytest.mark.parametrize("raw", [None, "", {}])
    def test_empty_payload_is_rejected(self, raw):
        with pytest.raises(InvalidDeclarationError, match="there is no content to decode"):
            decode_ingress(raw)

    def test_invalid_json_is_rejected(self):
        with pytest.raises(InvalidDeclarationError, match="invalid JSON"):
            decode_ingress("{not json")

    def test_other_kind_is_rejected(self):
        payload = ingress_payload()
        payload["kind"] = "Service"

        with pytest.raises(InvalidDeclarationError, match="expected kind Ingress"):
            decode_ingress(payload)

    def test_schema_mismatch_is_rejected(self):
        payload = ingress_payload()
        payload["spec"]["tls"] = "not-a-list"

        with pytest.raises(InvalidDeclarationError):
            decode_ingress(payload)


def test_format_created():
    assert format_created(["a/one", "b/two"]) == "[a/one b/two]"
    assert format_created([]) == "[]"


class TestIntercept:
    """Tests for DeclarationInterceptor.intercept."""

    def test_creates_replica_and_allows(self, interceptor, store):
        response = interceptor.intercept(make_request())

        assert response.allowed is True
        assert response.uid == "req-1"
        assert response.reason == f"Successfully created Secrets [{TARGET_NAMESPACE}/{SECRET_NAME}]"
        assert store.get(KIND_SECRET, TARGET_NAMESPACE, SECRET_NAME).data == make_secret().data

    def test_nothing_to_create(self, interceptor, store):
        interceptor.intercept(make_request())

        response = interceptor.intercept(make_request(uid="req-2"))

        assert response.allowed is True
        assert response.uid == "req-2"
        assert response.reason == "No new Secrets created"

    def test_source_namespace_is_skipped_without_store_calls(self, interceptor, store):
        response = interceptor.intercept(make_request(namespace=SOURCE_NAMESPACE))

        assert response.allowed is True
        assert response.reason == (
            f"Skipping mutation of Ingress [{SOURCE_NAMESPACE}/example] "
            "from the same namespace as the source"
        )
        assert store.calls == []

    def test_undecodable_object_is_refused(self, interceptor, store):
        response = interceptor.intercept(make_request(obj=""))

        assert response.allowed is False
        assert response.status.code == 400
        assert response.status.message == (
            f"failed to decode Ingress [{TARGET_NAMESPACE}/example]: there is no content to decode"
        )
        assert store.calls == []

    def test_missing_source_still_allows(self, interceptor):
        request = make_request(obj=ingress_payload(secret_names=["unknown"]))

        response = interceptor.intercept(request)

        assert response.allowed is True
        assert response.reason == "No new Secrets created"

    def test_cancelled_invocation_still_allows(self, interceptor, store):
        context = InvocationContext()
        context.cancel()

        response = interceptor.intercept(make_request(), context)

        assert response.allowed is True
        assert response.reason.startswith("Replication interrupted")
        assert store.calls == []

    def test_counts_admission_decisions(self, interceptor, registry):
        interceptor.intercept(make_request())
        interceptor.intercept(make_request(obj=""))

        counter = registry.counter("admission_requests_total")
        assert counter.get({"allowed": "true"}) == 1
        assert counter.get({"allowed": "false"}) == 1
