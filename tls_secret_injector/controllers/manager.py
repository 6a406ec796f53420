"""
Manager — Wire every component together and run until stopped.

The manager owns one stop event shared by every server, controller and
invocation context. Setting it (SIGINT, SIGTERM or lost leadership)
ends in-flight work at its next store call and shuts everything down.

Process layout:
- Admission webhook server: always running, on every replica
- Probe server (``/healthz``, ``/readyz``) and metrics server (``/metrics``)
- Ingress and Secret controllers: only while holding the leader lock
  when leader election is configured, immediately otherwise
"""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import List, Optional

from ..admission.interceptor import DeclarationInterceptor
from ..admission.server import ServerThread, create_probe_app, create_webhook_app, load_ssl_context
from ..config.settings import Settings
from ..engine.replication import ReplicationEngine
from ..models.resources import KIND_INGRESS, KIND_SECRET
from ..observability.health import HealthChecker, cert_dir_check, ping_check, store_check
from ..observability.metrics import MetricsRegistry
from ..observability.metrics import metrics as default_metrics
from ..store.base import ResourceStore
from .credential import CredentialReconciler
from .declaration import DeclarationReconciler
from .leader import LeaderElector
from .scheduler import Controller

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10


class Manager:
    """Owns the lifecycle of servers and controllers."""

    def __init__(
        self,
        settings: Settings,
        store: ResourceStore,
        metrics: Optional[MetricsRegistry] = None,
        stop: Optional[threading.Event] = None,
    ):
        self.settings = settings
        self.store = store
        self.metrics = metrics or default_metrics
        self.stop = stop or threading.Event()

        self.engine = ReplicationEngine(store, self.metrics)
        self.interceptor = DeclarationInterceptor(self.engine, settings.source_namespace, self.metrics)
        self.declaration_reconciler = DeclarationReconciler(store, self.engine, settings.source_namespace)
        self.credential_reconciler = CredentialReconciler(store, settings.source_namespace, self.metrics)

        self.controllers = [
            Controller(
                "ingress", KIND_INGRESS, self.declaration_reconciler, store,
                metrics=self.metrics, workers=settings.workers,
                timeout_seconds=settings.reconcile_timeout_seconds,
            ),
            Controller(
                "secret", KIND_SECRET, self.credential_reconciler, store,
                metrics=self.metrics, workers=settings.workers,
                timeout_seconds=settings.reconcile_timeout_seconds,
            ),
        ]

        self.liveness = HealthChecker()
        self.liveness.add_check("ping", ping_check)
        self.readiness = HealthChecker()
        self.readiness.add_check("ping", ping_check)
        self.readiness.add_check("store", store_check(store))
        if settings.cert_dir:
            self.readiness.add_check("webhook_certificate", cert_dir_check(Path(settings.cert_dir)))

        self.servers: List[ServerThread] = []
        self.elector: Optional[LeaderElector] = None
        self._controllers_started = False
        self._lock = threading.Lock()

    # ── Components ────────────────────────────────────────────────

    def build_servers(self) -> List[ServerThread]:
        settings = self.settings
        ssl_context = None
        if settings.cert_dir:
            ssl_context = load_ssl_context(Path(settings.cert_dir))
        else:
            logger.warning("No certificate directory configured, serving the webhook without TLS")

        webhook_app = create_webhook_app(
            self.interceptor,
            stop=self.stop,
            timeout_seconds=settings.admission_timeout_seconds,
        )
        probe_app = create_probe_app(self.liveness, self.readiness, self.metrics)

        return [
            ServerThread("webhook", webhook_app, settings.webhook_host, settings.webhook_port, ssl_context),
            ServerThread("probes", probe_app, settings.webhook_host, settings.probe_port),
            ServerThread("metrics", probe_app, settings.webhook_host, settings.metrics_port),
        ]

    def start_controllers(self) -> None:
        with self._lock:
            if self._controllers_started or self.stop.is_set():
                return
            self._controllers_started = True
        for controller in self.controllers:
            controller.start(self.stop)

    def _lost_leadership(self) -> None:
        logger.error("Leader lock lost, shutting down")
        self.stop.set()

    # ── Lifecycle ─────────────────────────────────────────────────

    def install_signal_handlers(self) -> None:
        def handle(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.stop.set()

        signal.signal(signal.SIGINT, handle)
        signal.signal(signal.SIGTERM, handle)

    def start(self) -> None:
        """Start servers and, directly or via leader election, controllers."""
        logger.info("Starting controller manager")
        self.servers = self.build_servers()
        for server in self.servers:
            server.start()

        if self.settings.leader_election_enabled:
            self.elector = LeaderElector(
                self.settings.leader_election_resource,
                self.settings.leader_election_namespace,
                on_started=self.start_controllers,
                on_stopped=self._lost_leadership,
            )
            self.elector.start()
        else:
            self.start_controllers()

    def shutdown(self) -> None:
        self.stop.set()
        if self._controllers_started:
            for controller in self.controllers:
                controller.join(SHUTDOWN_TIMEOUT_SECONDS)
        servers, self.servers = self.servers, []
        for server in servers:
            server.shutdown()
        logger.info("Controller manager stopped")

    def run(self) -> None:
        """Start everything and block until the stop event is set."""
        if threading.current_thread() is threading.main_thread():
            self.install_signal_handlers()
        try:
            self.start()
            self.stop.wait()
        finally:
            self.shutdown()
