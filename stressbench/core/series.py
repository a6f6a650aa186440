"""Bounded buffers for chart points and recent request logs."""

import threading
from collections import deque
from typing import List

from ..presets import BUFFER_DEFAULTS
from .models import RequestResult, TestMetrics, TimeSeriesPoint


class TimeSeriesRecorder:
    """Ordered chart series; the oldest points are evicted past `max_points`."""

    def __init__(self, max_points: int = BUFFER_DEFAULTS["time_series_cap"]):
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        self.max_points = max_points
        self._points = deque(maxlen=max_points)
        self._lock = threading.Lock()

    def capture(
        self, metrics: TestMetrics, active_connections: int, target_qps: float
    ) -> TimeSeriesPoint:
        """Append a point built from a metrics snapshot and return it."""
        point = TimeSeriesPoint(
            time=int(round(metrics.elapsed_time)),
            qps=metrics.current_qps,
            latency=metrics.avg_latency,
            error_rate=metrics.error_rate,
            active_connections=active_connections,
            target_qps=target_qps,
        )
        with self._lock:
            self._points.append(point)
        return point

    @property
    def points(self) -> List[TimeSeriesPoint]:
        with self._lock:
            return list(self._points)

    def clear(self) -> None:
        with self._lock:
            self._points.clear()

    def __len__(self) -> int:
        return len(self._points)


class RequestLog:
    """Most recent request results, for live log views."""

    def __init__(self, max_entries: int = BUFFER_DEFAULTS["request_log_cap"]):
        self.max_entries = max_entries
        self._entries = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def append(self, result: RequestResult) -> None:
        with self._lock:
            self._entries.append(result)

    @property
    def entries(self) -> List[RequestResult]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
