"""Streaming aggregation of request results into run metrics."""

import math
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from ..presets import ENGINE_DEFAULTS
from .models import RequestResult, TestMetrics


def calculate_percentile(sorted_values: List[float], percentile: float) -> float:
    """Nearest-rank percentile of an ascending list; 0.0 when empty."""
    if not sorted_values:
        return 0.0
    index = math.ceil(percentile / 100 * len(sorted_values)) - 1
    index = min(max(index, 0), len(sorted_values) - 1)
    return sorted_values[index]


class MetricsAggregator:
    """
    Collects RequestResults as they complete and derives TestMetrics.

    Ingest is an append under a lock; percentiles are computed at snapshot
    time from the latency samples, which are only re-sorted when new samples
    arrived since the previous snapshot. Results may arrive in any id order.
    """

    def __init__(
        self,
        total_requests: int = 0,
        window_ms: int = ENGINE_DEFAULTS["current_qps_window_ms"],
    ):
        self.window_seconds = window_ms / 1000
        self._lock = threading.Lock()
        self.reset(total_requests=total_requests)

    def reset(self, total_requests: int = 0, started_at: Optional[float] = None) -> None:
        """Drop all samples and restart the clock."""
        with self._lock:
            self.total_requests = total_requests
            self.started_at = started_at if started_at is not None else time.time()
            self.results: List[RequestResult] = []
            self._latencies: List[float] = []
            self._latencies_sorted = True
            self._latency_sum = 0.0
            self._success_count = 0
            self._status_codes: Dict[int, int] = {}
            self._business_codes: Dict[str, int] = {}
            self._recent: Deque[float] = deque()

    def ingest(self, result: RequestResult) -> None:
        """Record one completed, non-aborted result."""
        with self._lock:
            self.results.append(result)
            self._latencies.append(result.duration_ms)
            self._latencies_sorted = False
            self._latency_sum += result.duration_ms
            if result.success:
                self._success_count += 1
            self._status_codes[result.status] = self._status_codes.get(result.status, 0) + 1
            if result.business_code is not None:
                code = result.business_code
                self._business_codes[code] = self._business_codes.get(code, 0) + 1
            self._recent.append(result.timestamp)

    @property
    def completed_count(self) -> int:
        with self._lock:
            return len(self._latencies)

    def snapshot(self, now: Optional[float] = None) -> TestMetrics:
        """
        Derive metrics from everything ingested so far.

        Args:
            now: Wall-clock time to evaluate against (defaults to time.time())

        Returns:
            TestMetrics; repeated calls with the same `now` and no new
            ingests return equal values
        """
        if now is None:
            now = time.time()

        with self._lock:
            if not self._latencies_sorted:
                self._latencies.sort()
                self._latencies_sorted = True
            latencies = self._latencies

            # Trailing window for current QPS
            window_start = now - self.window_seconds
            while self._recent and self._recent[0] <= window_start:
                self._recent.popleft()
            current_qps = sum(1 for t in self._recent if t <= now)

            completed = len(latencies)
            fail_count = completed - self._success_count
            elapsed = max(0.0, now - self.started_at)

            if completed:
                metrics = TestMetrics(
                    avg_latency=self._latency_sum / completed,
                    min_latency=latencies[0],
                    max_latency=latencies[-1],
                    p50_latency=calculate_percentile(latencies, 50),
                    p90_latency=calculate_percentile(latencies, 90),
                    p95_latency=calculate_percentile(latencies, 95),
                    p99_latency=calculate_percentile(latencies, 99),
                    error_rate=fail_count / completed * 100,
                )
            else:
                metrics = TestMetrics()

            metrics.total_requests = self.total_requests
            metrics.completed_requests = completed
            metrics.success_count = self._success_count
            metrics.fail_count = fail_count
            metrics.current_qps = current_qps
            metrics.throughput = completed / elapsed if elapsed > 0 else 0.0
            metrics.elapsed_time = elapsed
            metrics.status_codes = dict(self._status_codes)
            metrics.business_codes = dict(self._business_codes)
            return metrics
