"""
Webhook Server — Flask apps for admission and probes.

Two apps are served:
- The admission app answers ``POST /mutate`` with an AdmissionReview.
  It must be served over TLS; the API server refuses plain HTTP webhooks.
- The probe app answers ``/healthz``, ``/readyz`` and ``/metrics``.

Both run on werkzeug servers in background threads so the manager can
start and stop them alongside the watch controllers.
"""

from __future__ import annotations

import logging
import ssl
import threading
import time
from pathlib import Path
from typing import Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from pydantic import ValidationError
from werkzeug.serving import BaseWSGIServer, make_server

from ..engine.context import InvocationContext
from ..models.admission import AdmissionReview
from ..observability.health import HealthChecker
from ..observability.metrics import MetricsRegistry
from .interceptor import DeclarationInterceptor

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__)
probes_bp = Blueprint("probes", __name__)


# ── Admission ─────────────────────────────────────────────────────


@webhook_bp.route("/mutate", methods=["POST"])
def mutate():
    """Handle one AdmissionReview for an Ingress write."""
    interceptor: DeclarationInterceptor = current_app.config["INTERCEPTOR"]
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "request body must be an AdmissionReview JSON object"}), 400

    try:
        review = AdmissionReview.model_validate(payload)
    except ValidationError as e:
        return jsonify({"error": f"invalid AdmissionReview: {e}"}), 400
    if review.request is None:
        return jsonify({"error": "AdmissionReview carries no request"}), 400

    context = InvocationContext(
        stop=current_app.config["STOP_EVENT"],
        timeout_seconds=current_app.config["ADMISSION_TIMEOUT_SECONDS"],
        request_id=review.request.uid,
    )
    response = interceptor.intercept(review.request, context)
    return jsonify(response.to_review(review.api_version))


def create_webhook_app(
    interceptor: DeclarationInterceptor,
    stop: Optional[threading.Event] = None,
    timeout_seconds: float = 10,
) -> Flask:
    """Create the admission Flask application."""
    app = Flask(__name__)
    app.config["INTERCEPTOR"] = interceptor
    app.config["STOP_EVENT"] = stop or threading.Event()
    app.config["ADMISSION_TIMEOUT_SECONDS"] = timeout_seconds

    app.register_blueprint(webhook_bp)

    @app.before_request
    def log_request_start():
        request._start_time = time.time()

    @app.after_request
    def log_request_end(response):
        duration_ms = int((time.time() - getattr(request, "_start_time", time.time())) * 1000)
        logger.debug(f"{request.method} {request.path} → {response.status_code} ({duration_ms}ms)")
        return response

    return app


# ── Probes & metrics ──────────────────────────────────────────────


def _health_response(checker: HealthChecker):
    result = checker.check()
    return jsonify(result.to_dict()), (200 if result.healthy else 503)


@probes_bp.route("/healthz")
def healthz():
    return _health_response(current_app.config["LIVENESS"])


@probes_bp.route("/readyz")
def readyz():
    return _health_response(current_app.config["READINESS"])


@probes_bp.route("/metrics")
def metrics_endpoint():
    registry: MetricsRegistry = current_app.config["METRICS"]
    if request.args.get("format") == "json":
        return jsonify(registry.export_json())
    return Response(registry.export_prometheus(), mimetype="text/plain; version=0.0.4")


def create_probe_app(
    liveness: HealthChecker,
    readiness: HealthChecker,
    metrics: MetricsRegistry,
) -> Flask:
    """Create the probe/metrics Flask application."""
    app = Flask(__name__)
    app.config["LIVENESS"] = liveness
    app.config["READINESS"] = readiness
    app.config["METRICS"] = metrics
    app.register_blueprint(probes_bp)
    return app


# ── Serving ───────────────────────────────────────────────────────


def load_ssl_context(cert_dir: Path) -> ssl.SSLContext:
    """Build a server SSL context from ``tls.crt``/``tls.key`` in ``cert_dir``."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.load_cert_chain(str(cert_dir / "tls.crt"), str(cert_dir / "tls.key"))
    return context


class ServerThread(threading.Thread):
    """Run a Flask app on a werkzeug server until ``shutdown()``."""

    def __init__(
        self,
        name: str,
        app: Flask,
        host: str,
        port: int,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        super().__init__(name=name, daemon=True)
        self.server: BaseWSGIServer = make_server(
            host, port, app, threaded=True, ssl_context=ssl_context
        )

    @property
    def port(self) -> int:
        return self.server.server_port

    def run(self) -> None:
        logger.info(f"Serving {self.name} on port {self.port}")
        self.server.serve_forever()

    def shutdown(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        logger.info(f"Stopped {self.name}")
