"""
Metrics — Collect and expose operational metrics.

A small in-process registry rendered in the Prometheus text
exposition format on the metrics port.

## Usage

    from tls_secret_injector.observability.metrics import metrics

    metrics.increment("replicas_created_total")
    metrics.timing("reconcile_duration_seconds", 0.12, labels={"controller": "secret"})
    metrics.set_gauge("work_queue_depth", 3, labels={"controller": "ingress"})

    output = metrics.export_prometheus()
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]


@dataclass
class MetricPoint:
    """A single metric data point."""

    name: str
    value: float
    timestamp: float
    labels: Dict[str, str] = field(default_factory=dict)


def _labels_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


class _Metric:
    """Shared label bookkeeping for all metric types."""

    kind = "untyped"

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._values: Dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def get(self, labels: Optional[Dict[str, str]] = None) -> float:
        """Get current value."""
        return self._values.get(_labels_key(labels), 0)

    def total(self) -> float:
        """Sum across every label combination."""
        return sum(self._values.values())

    def export(self) -> List[MetricPoint]:
        now = time.time()
        return [
            MetricPoint(self.name, value, now, dict(key))
            for key, value in self._values.items()
        ]


class Counter(_Metric):
    """A monotonically increasing counter."""

    kind = "counter"

    def inc(self, value: float = 1, labels: Optional[Dict[str, str]] = None) -> None:
        if value < 0:
            raise ValueError("Counters can only increase")
        with self._lock:
            self._values[_labels_key(labels)] += value


class Gauge(_Metric):
    """A gauge that can go up and down."""

    kind = "gauge"

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._values[_labels_key(labels)] = value

    def inc(self, value: float = 1, labels: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._values[_labels_key(labels)] += value

    def dec(self, value: float = 1, labels: Optional[Dict[str, str]] = None) -> None:
        self.inc(-value, labels)


class Histogram(_Metric):
    """A histogram for latency distributions."""

    kind = "histogram"
    DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, float("inf"))

    def __init__(self, name: str, help_text: str = "", buckets: Optional[tuple] = None):
        super().__init__(name, help_text)
        self.buckets = buckets or self.DEFAULT_BUCKETS
        self._counts: Dict[LabelKey, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._totals: Dict[LabelKey, int] = defaultdict(int)

    def observe(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _labels_key(labels)
        with self._lock:
            # _values holds the running sum
            self._values[key] += value
            self._totals[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1

    def count(self, labels: Optional[Dict[str, str]] = None) -> int:
        return self._totals.get(_labels_key(labels), 0)

    def export(self) -> List[MetricPoint]:
        points = []
        now = time.time()

        for key in list(self._totals):
            labels = dict(key)
            for bucket in self.buckets:
                # Buckets are stored cumulatively by observe()
                le = "+Inf" if bucket == float("inf") else str(bucket)
                points.append(MetricPoint(
                    f"{self.name}_bucket", self._counts[key].get(bucket, 0), now, {**labels, "le": le}
                ))
            points.append(MetricPoint(f"{self.name}_sum", self._values[key], now, labels))
            points.append(MetricPoint(f"{self.name}_count", self._totals[key], now, labels))

        return points


class MetricsRegistry:
    """
    Central registry for all metrics.

    Names are stored with the registry prefix applied.
    """

    def __init__(self, prefix: str = "injector"):
        self.prefix = prefix
        self._metrics: Dict[str, _Metric] = {}
        self._lock = Lock()

        self._register_common_metrics()

    def _register_common_metrics(self) -> None:
        # Replication
        self.counter("replicas_created_total", "Replica Secrets created")
        self.counter("replicas_updated_total", "Replica Secrets refreshed from their source")
        self.counter("replication_errors_total", "Per-item replication failures")

        # Admission
        self.counter("admission_requests_total", "Admission requests handled")

        # Reconcile loops
        self.counter("reconcile_total", "Reconcile invocations")
        self.histogram("reconcile_duration_seconds", "Reconcile duration")
        self.gauge("work_queue_depth", "Keys waiting in the work queue")

    def _get_or_create(self, cls: type, name: str, help_text: str) -> Any:
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            metric = self._metrics.get(full_name)
            if metric is None:
                metric = cls(full_name, help_text)
                self._metrics[full_name] = metric
            elif not isinstance(metric, cls):
                raise TypeError(f"{full_name} is already registered as a {metric.kind}")
            return metric

    def counter(self, name: str, help_text: str = "") -> Counter:
        return self._get_or_create(Counter, name, help_text)

    def gauge(self, name: str, help_text: str = "") -> Gauge:
        return self._get_or_create(Gauge, name, help_text)

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        return self._get_or_create(Histogram, name, help_text)

    # Convenience methods
    def increment(self, name: str, value: float = 1, labels: Optional[Dict[str, str]] = None) -> None:
        self.counter(name).inc(value, labels)

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        self.gauge(name).set(value, labels)

    def timing(self, name: str, seconds: float, labels: Optional[Dict[str, str]] = None) -> None:
        self.histogram(name).observe(seconds, labels)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []
        for metric in self._metrics.values():
            lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            for point in metric.export():
                lines.append(f"{point.name}{self._format_labels(point.labels)} {point.value}")
        return "\n".join(lines) + "\n"

    def export_json(self) -> Dict[str, Any]:
        """Export metric totals as JSON."""
        result: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "counters": {},
            "gauges": {},
            "histograms": {},
        }
        for name, metric in self._metrics.items():
            if isinstance(metric, Histogram):
                result["histograms"][name] = {
                    "sum": metric.total(),
                    "count": sum(metric._totals.values()),
                }
            elif isinstance(metric, Gauge):
                result["gauges"][name] = metric.total()
            else:
                result["counters"][name] = metric.total()
        return result

    def _format_labels(self, labels: Dict[str, str]) -> str:
        if not labels:
            return ""
        pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"


# Global metrics instance
metrics = MetricsRegistry()
