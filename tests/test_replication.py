"""
Tests for the Replication Engine.
"""

import threading

import pytest

from conftest import (
    SECRET_NAME,
    SOURCE_NAMESPACE,
    TARGET_NAMESPACE,
    TLS_DATA,
    make_ingress,
    make_secret,
)
from tls_secret_injector.engine.context import InvocationContext
from tls_secret_injector.engine.errors import InvalidDeclarationError, InvocationCancelled
from tls_secret_injector.engine.replication import ReplicationEngine, build_replica
from tls_secret_injector.models.resources import (
    APP_NAME,
    IDENTITY_LABEL,
    KIND_SECRET,
    SECRET_TYPE_TLS,
    SOURCE_NAME_LABEL,
)
from tls_secret_injector.store.errors import AlreadyExistsError, StoreError
from tls_secret_injector.store.memory import InMemoryStore


class TestBuildReplica:
    """Tests for build_replica."""

    def test_copies_type_and_data(self, source_secret):
        replica = build_replica(source_secret, TARGET_NAMESPACE)

        assert replica.metadata.namespace == TARGET_NAMESPACE
        assert replica.metadata.name == SECRET_NAME
        assert replica.type == SECRET_TYPE_TLS
        assert replica.data == TLS_DATA

    def test_sets_provenance_labels(self, source_secret):
        replica = build_replica(source_secret, TARGET_NAMESPACE)

        assert replica.metadata.labels == {
            IDENTITY_LABEL: APP_NAME,
            SOURCE_NAME_LABEL: SECRET_NAME,
        }

    def test_data_is_not_shared_with_source(self, source_secret):
        replica = build_replica(source_secret, TARGET_NAMESPACE)
        replica.data["tls.crt"] = b"changed"

        assert source_secret.data["tls.crt"] == b"certificate"


class TestEnsureReplicas:
    """Tests for ReplicationEngine.ensure_replicas."""

    def test_creates_missing_replica(self, engine, store):
        created = engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert created == [f"{TARGET_NAMESPACE}/{SECRET_NAME}"]
        replica = store.get(KIND_SECRET, TARGET_NAMESPACE, SECRET_NAME)
        assert replica.data == TLS_DATA
        assert replica.metadata.labels[SOURCE_NAME_LABEL] == SECRET_NAME

    def test_records_created_metric(self, engine, registry):
        engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert registry.counter("replicas_created_total").get() == 1

    def test_existing_replica_is_left_alone(self, engine, store):
        store.create(make_secret(namespace=TARGET_NAMESPACE, data={"tls.crt": b"old"}))
        store.calls.clear()

        created = engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert created == []
        assert [op for op, _, _ in store.calls] == ["get"]
        assert store.get(KIND_SECRET, TARGET_NAMESPACE, SECRET_NAME).data == {"tls.crt": b"old"}

    def test_second_call_is_a_no_op(self, engine, store):
        engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)
        created = engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert created == []
        assert len(store.list(KIND_SECRET)) == 2

    def test_missing_source_is_skipped(self, engine, store, registry):
        created = engine.ensure_replicas(
            make_ingress(secret_names=["unknown"]), SOURCE_NAMESPACE, TARGET_NAMESPACE
        )

        assert created == []
        assert ("create", KIND_SECRET, f"{TARGET_NAMESPACE}/unknown") not in store.calls
        assert registry.counter("replication_errors_total").get({"stage": "get_source"}) == 1

    def test_lost_create_race_is_not_an_error(self, engine, store, registry):
        store.inject_error("create", KIND_SECRET, error=AlreadyExistsError("already exists"))

        created = engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert created == []
        assert registry.counter("replication_errors_total").total() == 0

    def test_create_failure_is_counted(self, engine, store, registry):
        store.inject_error("create", KIND_SECRET, error=StoreError("forbidden"))

        created = engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert created == []
        assert registry.counter("replication_errors_total").get({"stage": "create"}) == 1

    def test_target_lookup_failure_skips_binding(self, engine, store, registry):
        store.inject_error("get", KIND_SECRET, f"{TARGET_NAMESPACE}/{SECRET_NAME}")

        created = engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE)

        assert created == []
        assert ("get", KIND_SECRET, f"{SOURCE_NAMESPACE}/{SECRET_NAME}") not in store.calls
        assert registry.counter("replication_errors_total").get({"stage": "get_target"}) == 1

    def test_failure_on_one_binding_does_not_stop_others(self, engine, store):
        store.create(make_secret(name="second"))

        created = engine.ensure_replicas(
            make_ingress(secret_names=["unknown", "second"]), SOURCE_NAMESPACE, TARGET_NAMESPACE
        )

        assert created == [f"{TARGET_NAMESPACE}/second"]

    def test_created_follows_binding_order(self, engine, store):
        store.create(make_secret(name="b-cert"))
        store.create(make_secret(name="a-cert"))

        created = engine.ensure_replicas(
            make_ingress(secret_names=["b-cert", "a-cert"]), SOURCE_NAMESPACE, TARGET_NAMESPACE
        )

        assert created == [f"{TARGET_NAMESPACE}/b-cert", f"{TARGET_NAMESPACE}/a-cert"]

    def test_binding_without_secret_name_is_skipped(self, engine, store):
        created = engine.ensure_replicas(
            make_ingress(secret_names=[""]), SOURCE_NAMESPACE, TARGET_NAMESPACE
        )

        assert created == []
        assert store.calls == []

    def test_ingress_without_tls_does_nothing(self, engine, store):
        created = engine.ensure_replicas(
            make_ingress(secret_names=[]), SOURCE_NAMESPACE, TARGET_NAMESPACE
        )

        assert created == []
        assert store.calls == []

    def test_non_tls_source_is_still_copied(self, engine, store):
        store.create(make_secret(name="opaque", type="Opaque", data={"token": b"x"}))

        created = engine.ensure_replicas(
            make_ingress(secret_names=["opaque"]), SOURCE_NAMESPACE, TARGET_NAMESPACE
        )

        assert created == [f"{TARGET_NAMESPACE}/opaque"]
        assert store.get(KIND_SECRET, TARGET_NAMESPACE, "opaque").type == "Opaque"

    def test_rejects_non_ingress_declaration(self, engine, source_secret):
        with pytest.raises(InvalidDeclarationError):
            engine.ensure_replicas(source_secret, SOURCE_NAMESPACE, TARGET_NAMESPACE)


class TestCancellation:
    """Tests for cancellation during ensure_replicas."""

    def test_cancelled_before_start_touches_nothing(self, engine, store):
        context = InvocationContext()
        context.cancel()

        with pytest.raises(InvocationCancelled) as exc_info:
            engine.ensure_replicas(make_ingress(), SOURCE_NAMESPACE, TARGET_NAMESPACE, context)

        assert exc_info.value.created == []
        assert store.calls == []

    def test_cancellation_reports_already_created(self, source_secret):
        stop = threading.Event()

        class StopAfterCreate(InMemoryStore):
            def create(self, obj):
                result = super().create(obj)
                stop.set()
                return result

        store = StopAfterCreate([source_secret, make_secret(name="second")])
        # Seeding the store goes through create() too
        stop.clear()
        engine = ReplicationEngine(store)

        with pytest.raises(InvocationCancelled) as exc_info:
            engine.ensure_replicas(
                make_ingress(secret_names=[SECRET_NAME, "second"]),
                SOURCE_NAMESPACE,
                TARGET_NAMESPACE,
                InvocationContext(stop=stop),
            )

        assert exc_info.value.created == [f"{TARGET_NAMESPACE}/{SECRET_NAME}"]
        assert ("get", KIND_SECRET, f"{TARGET_NAMESPACE}/second") not in store.calls
