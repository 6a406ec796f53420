"""
Tests for the Manager lifecycle and leader election wiring.
"""

import json
import time
import urllib.request
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.leaderelection.resourcelock.leaselock import LeaseLock

from conftest import SECRET_NAME, SOURCE_NAMESPACE, TARGET_NAMESPACE, make_ingress
from tls_secret_injector.config.settings import Settings
from tls_secret_injector.controllers.leader import LeaderElector
from tls_secret_injector.controllers.manager import Manager
from tls_secret_injector.models.resources import KIND_SECRET


def local_settings(**overrides):
    values = dict(
        source_namespace=SOURCE_NAMESPACE,
        webhook_host="127.0.0.1",
        webhook_port=0,
        probe_port=0,
        metrics_port=0,
    )
    values.update(overrides)
    return Settings(**values)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def manager(store, registry):
    manager = Manager(local_settings(), store, registry)
    yield manager
    manager.shutdown()


class TestManager:
    """Tests for Manager without leader election."""

    def test_serves_probes_and_runs_controllers(self, manager, store):
        store.create(make_ingress())

        manager.start()

        probes = next(s for s in manager.servers if s.name == "probes")
        with urllib.request.urlopen(f"http://127.0.0.1:{probes.port}/healthz", timeout=5) as resp:
            assert resp.status == 200
            assert json.loads(resp.read())["status"] == "healthy"

        assert wait_for(lambda: any(
            m.namespace == TARGET_NAMESPACE and m.name == SECRET_NAME
            for m in store.list(KIND_SECRET)
        ))

    def test_serves_metrics(self, manager):
        manager.start()

        metrics = next(s for s in manager.servers if s.name == "metrics")
        with urllib.request.urlopen(f"http://127.0.0.1:{metrics.port}/metrics", timeout=5) as resp:
            assert "injector_reconcile_total" in resp.read().decode()

    def test_webhook_served(self, manager):
        manager.start()

        webhook = next(s for s in manager.servers if s.name == "webhook")
        body = json.dumps({
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "request": {"uid": "u1", "namespace": SOURCE_NAMESPACE, "name": "x", "object": {}},
        }).encode()
        request = urllib.request.Request(
            f"http://127.0.0.1:{webhook.port}/mutate",
            data=body,
            headers={"Content-Type": "application/json"},
        )
        with urllib.request.urlopen(request, timeout=5) as resp:
            assert json.loads(resp.read())["response"]["allowed"] is True

    def test_readiness_includes_store(self, manager):
        assert "store" in manager.readiness.names
        assert manager.liveness.names == ["ping"]

    def test_controllers_use_reconcile_timeout(self, store, registry):
        manager = Manager(local_settings(reconcile_timeout_seconds=12.5), store, registry)

        assert [c.timeout_seconds for c in manager.controllers] == [12.5, 12.5]

    def test_start_controllers_is_idempotent(self, manager):
        with patch.object(manager.controllers[0], "start") as start:
            manager.start_controllers()
            manager.start_controllers()

        start.assert_called_once()

    def test_shutdown_sets_stop(self, manager):
        manager.start()
        manager.shutdown()

        assert manager.stop.is_set()


class TestLeaderElection:
    """Tests for controller start-up under leader election."""

    @pytest.fixture
    def elected_manager(self, store, registry):
        settings = local_settings(
            leader_election_resource="tls-secret-injector",
            leader_election_namespace="kube-system",
        )
        with patch("tls_secret_injector.controllers.manager.LeaderElector") as elector_cls:
            manager = Manager(settings, store, registry)
            manager.start()
            yield manager, elector_cls
            manager.shutdown()

    def test_controllers_wait_for_leadership(self, elected_manager):
        manager, elector_cls = elected_manager

        elector_cls.return_value.start.assert_called_once()
        assert manager._controllers_started is False

        elector_cls.call_args.kwargs["on_started"]()
        assert manager._controllers_started is True

    def test_losing_leadership_stops_process(self, elected_manager):
        manager, elector_cls = elected_manager

        elector_cls.call_args.kwargs["on_stopped"]()

        assert manager.stop.is_set()


class TestLeaderElector:
    """Tests for LeaderElector callbacks."""

    def test_callbacks_track_leadership(self):
        started, stopped = MagicMock(), MagicMock()
        elector = LeaderElector("lock", "kube-system", started, stopped, identity="pod-1")

        elector._started()
        assert elector.is_leader.is_set()
        started.assert_called_once()

        elector._stopped()
        assert not elector.is_leader.is_set()
        stopped.assert_called_once()

    def test_lock_is_a_lease(self):
        elector = LeaderElector("tls-secret-injector", "kube-system", MagicMock(), MagicMock(), identity="pod-1")

        config = elector.build_config()

        assert isinstance(config.lock, LeaseLock)
        assert (config.lock.name, config.lock.namespace, config.lock.identity) == (
            "tls-secret-injector", "kube-system", "pod-1",
        )
        assert config.lease_duration > config.renew_deadline

    def test_identity_is_unique(self):
        a = LeaderElector("lock", "ns", MagicMock(), MagicMock())
        b = LeaderElector("lock", "ns", MagicMock(), MagicMock())

        assert a.identity != b.identity
