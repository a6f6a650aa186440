"""Tests for metrics aggregation and percentile calculation."""

import random

import pytest

from stressbench.core.metrics import MetricsAggregator, calculate_percentile
from stressbench.core.models import RequestResult


def make_result(i, duration_ms, success=True, status=200, timestamp=1000.0, business_code=None, error=None):
    return RequestResult(
        id=i,
        timestamp=timestamp,
        duration_ms=duration_ms,
        status=status,
        success=success,
        error=error,
        business_code=business_code,
    )


@pytest.mark.unit
class TestPercentile:
    """Nearest-rank percentiles."""

    def test_one_to_ten(self):
        values = [float(v) for v in range(1, 11)]
        assert calculate_percentile(values, 50) == 5
        assert calculate_percentile(values, 90) == 9
        assert calculate_percentile(values, 95) == 10
        assert calculate_percentile(values, 99) == 10

    def test_single_value(self):
        assert calculate_percentile([42.0], 50) == 42.0
        assert calculate_percentile([42.0], 99) == 42.0

    def test_empty(self):
        assert calculate_percentile([], 95) == 0.0

    def test_zero_percentile_clamped_to_first(self):
        assert calculate_percentile([1.0, 2.0, 3.0], 0) == 1.0


@pytest.mark.unit
class TestMetricsAggregator:
    """Snapshot derivation from ingested results."""

    def test_empty_snapshot(self):
        aggregator = MetricsAggregator(total_requests=10)
        metrics = aggregator.snapshot()
        assert metrics.total_requests == 10
        assert metrics.completed_requests == 0
        assert metrics.error_rate == 0
        assert metrics.avg_latency == 0
        assert metrics.p99_latency == 0

    def test_latency_ordering_on_random_samples(self):
        rng = random.Random(3)
        aggregator = MetricsAggregator()
        for i in range(500):
            aggregator.ingest(make_result(i, rng.uniform(1, 900), success=rng.random() > 0.2))

        m = aggregator.snapshot()
        assert m.min_latency <= m.p50_latency <= m.p90_latency <= m.p95_latency <= m.p99_latency <= m.max_latency
        assert m.success_count + m.fail_count == m.completed_requests == 500

    def test_out_of_order_ingest(self):
        aggregator = MetricsAggregator()
        for i in (5, 1, 3, 2, 4):
            aggregator.ingest(make_result(i, float(i * 10)))
        m = aggregator.snapshot()
        assert m.min_latency == 10
        assert m.max_latency == 50
        assert m.avg_latency == pytest.approx(30)
        assert [r.id for r in aggregator.results] == [5, 1, 3, 2, 4]

    def test_error_rate(self):
        aggregator = MetricsAggregator()
        aggregator.ingest(make_result(1, 10))
        aggregator.ingest(make_result(2, 10, success=False, status=500))
        aggregator.ingest(make_result(3, 10, success=False, status=0, error="timeout"))
        aggregator.ingest(make_result(4, 10))
        m = aggregator.snapshot()
        assert m.error_rate == pytest.approx(50.0)
        assert m.status_codes == {200: 2, 500: 1, 0: 1}

    def test_business_codes_counted(self):
        aggregator = MetricsAggregator()
        aggregator.ingest(make_result(1, 10, business_code="0"))
        aggregator.ingest(make_result(2, 10, business_code="0"))
        aggregator.ingest(make_result(3, 10, success=False, business_code="N/A"))
        aggregator.ingest(make_result(4, 10))
        assert aggregator.snapshot().business_codes == {"0": 2, "N/A": 1}

    def test_current_qps_trailing_window(self):
        aggregator = MetricsAggregator(window_ms=1000)
        now = 5000.0
        aggregator.ingest(make_result(1, 10, timestamp=now - 1.5))
        aggregator.ingest(make_result(2, 10, timestamp=now - 0.9))
        aggregator.ingest(make_result(3, 10, timestamp=now - 0.5))
        assert aggregator.snapshot(now=now).current_qps == 2

    def test_snapshot_is_idempotent(self):
        aggregator = MetricsAggregator(total_requests=3)
        aggregator.reset(total_requests=3, started_at=100.0)
        for i, latency in enumerate((30.0, 10.0, 20.0), start=1):
            aggregator.ingest(make_result(i, latency, timestamp=101.0))
        assert aggregator.snapshot(now=101.5) == aggregator.snapshot(now=101.5)

    def test_throughput_and_elapsed(self):
        aggregator = MetricsAggregator()
        aggregator.reset(started_at=100.0)
        for i in range(20):
            aggregator.ingest(make_result(i, 5, timestamp=101.0))
        m = aggregator.snapshot(now=104.0)
        assert m.elapsed_time == pytest.approx(4.0)
        assert m.throughput == pytest.approx(5.0)

    def test_reset_clears_samples(self):
        aggregator = MetricsAggregator()
        aggregator.ingest(make_result(1, 10))
        aggregator.reset(total_requests=7)
        m = aggregator.snapshot()
        assert m.completed_requests == 0
        assert m.total_requests == 7
        assert aggregator.results == []
        assert aggregator.completed_count == 0
