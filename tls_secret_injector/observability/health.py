"""
Health Check — Liveness and readiness status for the probe endpoints.

Checks are registered by name and each returns a ComponentHealth.
The manager wires ``/healthz`` to the liveness checker and ``/readyz``
to the readiness checker.

## Usage

    from tls_secret_injector.observability.health import HealthChecker, ping_check

    checker = HealthChecker()
    checker.add_check("ping", ping_check)
    status = checker.check()

    if status.healthy:
        print("All systems operational")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..store.base import ResourceStore
from ..store.errors import StoreError

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SystemHealth:
    """Overall health status."""

    status: HealthStatus
    timestamp: str
    uptime_seconds: float
    components: List[ComponentHealth]

    @property
    def healthy(self) -> bool:
        return self.status != HealthStatus.UNHEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "uptime_seconds": self.uptime_seconds,
            "healthy": self.healthy,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    "details": c.details,
                }
                for c in self.components
            ],
        }


HealthCheck = Callable[[], ComponentHealth]


class HealthChecker:
    """
    Runs a set of named checks and aggregates them.

    A check that raises is reported as unhealthy rather than failing the
    probe request.
    """

    def __init__(self) -> None:
        self._checks: Dict[str, HealthCheck] = {}
        self._start_time = time.time()

    def add_check(self, name: str, check: HealthCheck) -> None:
        self._checks[name] = check

    @property
    def names(self) -> List[str]:
        return list(self._checks)

    def check(self) -> SystemHealth:
        """Run all checks and return aggregate status."""
        components = []
        for name, check in self._checks.items():
            start = time.time()
            try:
                component = check()
            except Exception as e:
                logger.warning(f"Health check {name} raised: {e}")
                component = ComponentHealth(
                    name=name,
                    status=HealthStatus.UNHEALTHY,
                    message=f"Check failed: {e}",
                )
            if component.latency_ms is None:
                component.latency_ms = (time.time() - start) * 1000
            components.append(component)

        statuses = [c.status for c in components]
        if HealthStatus.UNHEALTHY in statuses:
            overall = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.HEALTHY

        return SystemHealth(
            status=overall,
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            uptime_seconds=time.time() - self._start_time,
            components=components,
        )


def ping_check() -> ComponentHealth:
    """Always healthy: the process is able to answer."""
    return ComponentHealth(name="ping", status=HealthStatus.HEALTHY, message="pong")


def store_check(store: ResourceStore) -> HealthCheck:
    """Build a check that the resource store is reachable."""

    def check() -> ComponentHealth:
        try:
            store.ping()
        except StoreError as e:
            return ComponentHealth(
                name="store",
                status=HealthStatus.UNHEALTHY,
                message=f"Store unreachable: {e}",
                details={"backend": store.name},
            )
        return ComponentHealth(
            name="store",
            status=HealthStatus.HEALTHY,
            message="Store reachable",
            details={"backend": store.name},
        )

    return check


def cert_dir_check(cert_dir: Path) -> HealthCheck:
    """Build a check that the webhook serving certificate is present."""

    def check() -> ComponentHealth:
        missing = [f for f in ("tls.crt", "tls.key") if not (cert_dir / f).is_file()]
        if missing:
            return ComponentHealth(
                name="webhook_certificate",
                status=HealthStatus.UNHEALTHY,
                message=f"Missing {', '.join(missing)} in {cert_dir}",
            )
        return ComponentHealth(
            name="webhook_certificate",
            status=HealthStatus.HEALTHY,
            message="Serving certificate present",
        )

    return check
