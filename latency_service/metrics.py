"""
Prometheus metrics for the latency service.

All latencies are recorded in seconds. Counters and the histogram are
owned by a MetricsRecorder and registered on its own registry, so the
process-wide state is an explicit object handed to the request handler.
prometheus_client guards every increment/observe with an internal lock,
which makes the recorder safe to share across concurrent requests.
"""
from typing import List, Optional, Tuple

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


def exponential_buckets(start: float, factor: float, count: int) -> List[float]:
    """`count` bucket upper bounds starting at `start`, each `factor` times the previous."""
    if start <= 0 or factor <= 1 or count < 1:
        raise ValueError("exponential buckets need start > 0, factor > 1 and count >= 1")
    return [start * factor ** i for i in range(count)]


# 50 exponential buckets ranging from 0.5 ms to ~3 minutes
LATENCY_BUCKETS = exponential_buckets(0.0005, 1.3, 50)


class MetricsRecorder:
    """Request counter, success counter and latency histogram."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.requests = Counter(
            "requests",
            "Number of requests",
            registry=self.registry
        )
        self.success = Counter(
            "success",
            "Number of successfully processed requests",
            registry=self.registry
        )
        self.latency = Histogram(
            "latency_seconds",
            "Simulated processing latency in seconds",
            buckets=LATENCY_BUCKETS,
            registry=self.registry
        )

    def record_received(self):
        """Count an inbound request. Called before any failure path."""
        self.requests.inc()

    def record_success(self, latency: float):
        """Count a completed request and observe its sampled latency."""
        self.success.inc()
        self.latency.observe(latency)

    def exposition(self) -> Tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST

    def snapshot(self) -> dict:
        """Current counter values and histogram count/sum, for tests and diagnostics."""
        values = {}
        for metric in self.registry.collect():
            for sample in metric.samples:
                if sample.name in ("requests_total", "success_total",
                                   "latency_seconds_count", "latency_seconds_sum"):
                    values[sample.name] = sample.value
        return values
