"""Tests for the bounded time series and request log buffers."""

import pytest

from stressbench.core.models import RequestResult, TestMetrics
from stressbench.core.series import RequestLog, TimeSeriesRecorder


@pytest.mark.unit
class TestTimeSeriesRecorder:
    def test_capture_builds_point(self):
        recorder = TimeSeriesRecorder(max_points=10)
        metrics = TestMetrics(elapsed_time=2.6, current_qps=9, avg_latency=51.5, error_rate=10.0)

        point = recorder.capture(metrics, active_connections=4, target_qps=10)

        assert point.time == 3
        assert point.qps == 9
        assert point.latency == 51.5
        assert point.error_rate == 10.0
        assert point.active_connections == 4
        assert point.target_qps == 10
        assert recorder.points == [point]

    def test_oldest_points_evicted(self):
        recorder = TimeSeriesRecorder(max_points=3)
        for t in range(5):
            recorder.capture(TestMetrics(elapsed_time=float(t)), 0, 1)

        assert len(recorder) == 3
        assert [p.time for p in recorder.points] == [2, 3, 4]

    def test_clear(self):
        recorder = TimeSeriesRecorder()
        recorder.capture(TestMetrics(), 0, 1)
        recorder.clear()
        assert recorder.points == []

    def test_rejects_empty_cap(self):
        with pytest.raises(ValueError):
            TimeSeriesRecorder(max_points=0)


@pytest.mark.unit
def test_request_log_keeps_most_recent():
    log = RequestLog(max_entries=2)
    for i in range(1, 5):
        log.append(RequestResult(id=i, timestamp=0.0, duration_ms=1.0, status=200, success=True))
    assert [r.id for r in log.entries] == [3, 4]
    log.clear()
    assert len(log) == 0
