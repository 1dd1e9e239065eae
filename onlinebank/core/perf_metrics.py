"""
API Performance Metrics.

Per-endpoint call counts, cumulative latency and a bounded window of recent
latencies for percentile estimates.

Usage:
    recorder = MetricsRecorder()

    # Record a request
    recorder.record("/api/clients", 150.5)

    # Per-endpoint view
    recorder.snapshot()
    # Returns: {"/api/clients": {"calls": 1, "averageTime": 150.5, "p50": 150.5, ...}}

Percentiles are estimates over the last SAMPLE_CAPACITY calls of an
endpoint, not over its whole history.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

# Recent latencies kept per endpoint
SAMPLE_CAPACITY = 100

# Threshold for "slow" requests logged by the timing middleware
SLOW_REQUEST_THRESHOLD_MS = 500


def percentile(sorted_samples: List[float], p: float) -> Optional[float]:
    """
    Nearest-rank percentile over an ascending list.

    index = ceil(p / 100 * n) - 1, clamped to >= 0.
    """
    if not sorted_samples:
        return None
    index = math.ceil(p / 100 * len(sorted_samples)) - 1
    index = min(max(0, index), len(sorted_samples) - 1)
    return sorted_samples[index]


@dataclass
class EndpointMetric:
    """Metrics for a single endpoint."""

    endpoint: str
    calls: int = 0
    total_latency_ms: float = 0.0
    # deque with maxlen gives strict FIFO eviction of the oldest sample
    samples: Deque[float] = field(default_factory=lambda: deque(maxlen=SAMPLE_CAPACITY))
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def record(self, latency_ms: float) -> None:
        with self._lock:
            self.calls += 1
            self.total_latency_ms += latency_ms
            self.samples.append(latency_ms)

    def totals(self) -> tuple[int, float]:
        with self._lock:
            return self.calls, self.total_latency_ms

    def view(self) -> Dict[str, Any]:
        """Consistent copy of the counters and percentile estimates."""
        with self._lock:
            calls = self.calls
            total = self.total_latency_ms
            window = sorted(self.samples)

        data: Dict[str, Any] = {
            "calls": calls,
            "averageTime": round(total / calls, 2) if calls else 0,
        }
        if window:
            data["p50"] = percentile(window, 50)
            data["p95"] = percentile(window, 95)
            data["p99"] = percentile(window, 99)
        return data


class MetricsRecorder:
    """
    In-memory API metrics keyed by logical endpoint name.

    Thread-safe: the registry lock only guards creation of new endpoint
    entries; updates lock the individual entry.
    """

    def __init__(self):
        self._endpoints: Dict[str, EndpointMetric] = {}
        self._lock = Lock()

    def _metric_for(self, endpoint: str) -> EndpointMetric:
        metric = self._endpoints.get(endpoint)
        if metric is None:
            with self._lock:
                metric = self._endpoints.get(endpoint)
                if metric is None:
                    metric = EndpointMetric(endpoint=endpoint)
                    self._endpoints[endpoint] = metric
        return metric

    def record(self, endpoint: str, elapsed_ms: float) -> None:
        """
        Record one call.

        Args:
            endpoint: Logical endpoint name (e.g., "/api/clients/{id}")
            elapsed_ms: Call latency in milliseconds
        """
        self._metric_for(endpoint).record(elapsed_ms)

    def get(self, endpoint: str) -> Optional[EndpointMetric]:
        return self._endpoints.get(endpoint)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Per-endpoint calls, average latency and p50/p95/p99."""
        with self._lock:
            metrics = list(self._endpoints.values())
        return {m.endpoint: m.view() for m in metrics}

    def summary(self) -> Dict[str, Any]:
        """Totals across all endpoints."""
        with self._lock:
            metrics = list(self._endpoints.values())

        total_calls = 0
        total_latency = 0.0
        for m in metrics:
            calls, latency = m.totals()
            total_calls += calls
            total_latency += latency

        return {
            "totalApiCalls": total_calls,
            "averageResponseTime": round(total_latency / total_calls, 2) if total_calls else 0,
            "endpointsTracked": len(metrics),
        }

    def clear(self) -> None:
        """Clear all metrics."""
        with self._lock:
            self._endpoints.clear()
