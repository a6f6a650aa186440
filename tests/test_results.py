"""Tests for result export and charting."""

import pandas as pd
import pytest

from stressbench.core.models import RequestResult, TestMetrics, TimeSeriesPoint
from stressbench.results.charts import generate_charts
from stressbench.results.export import RESULT_COLUMNS, SERIES_COLUMNS, ResultExporter


@pytest.fixture
def results():
    return [
        RequestResult(id=3, timestamp=1.3, duration_ms=30.0, status=200, success=True, business_code="0"),
        RequestResult(id=1, timestamp=1.1, duration_ms=10.0, status=200, success=False, business_code="1001"),
        RequestResult(id=2, timestamp=1.2, duration_ms=100.0, status=0, success=False, error="timeout"),
        RequestResult(id=4, timestamp=1.4, duration_ms=100.0, status=0, success=False, error="timeout"),
        RequestResult(id=5, timestamp=1.5, duration_ms=20.0, status=503, success=False),
    ]


@pytest.fixture
def points():
    return [
        TimeSeriesPoint(time=t, qps=t * 2, latency=40.0 + t, error_rate=0.0, active_connections=t % 3, target_qps=10)
        for t in range(6)
    ]


@pytest.mark.unit
class TestResultExporter:
    def test_results_dataframe_sorted_by_id(self, results):
        df = ResultExporter(results).results_dataframe()
        assert list(df.columns) == RESULT_COLUMNS
        assert df["id"].tolist() == [1, 2, 3, 4, 5]

    def test_empty_dataframes_keep_columns(self):
        exporter = ResultExporter()
        assert list(exporter.results_dataframe().columns) == RESULT_COLUMNS
        assert list(exporter.series_dataframe().columns) == SERIES_COLUMNS

    def test_to_tsv(self, tmp_path, results):
        path = tmp_path / "results.tsv"
        ResultExporter(results).to_tsv(str(path))
        df = pd.read_csv(path, sep="\t")
        assert len(df) == 5
        assert df.loc[df["id"] == 2, "error"].item() == "timeout"

    def test_series_export(self, tmp_path, points):
        exporter = ResultExporter(points=points)
        path = tmp_path / "series.csv"
        exporter.series_to_csv(str(path))

        df = pd.read_csv(path)
        assert list(df.columns) == SERIES_COLUMNS
        assert df["qps"].tolist() == [0, 2, 4, 6, 8, 10]
        assert exporter.get_tsv_string().splitlines()[0] == "\t".join(SERIES_COLUMNS)

    def test_error_summary(self, results):
        summary = ResultExporter(results).error_summary()
        assert summary == {
            "timeout": 2,
            "HTTP 200 (code 1001)": 1,
            "HTTP 503": 1,
        }

    def test_print_results(self, capsys, results):
        metrics = TestMetrics(
            completed_requests=5,
            success_count=1,
            fail_count=4,
            error_rate=80.0,
            status_codes={200: 2, 0: 2, 503: 1},
            business_codes={"0": 1, "1001": 1},
        )
        ResultExporter(results).print_results(metrics)
        out = capsys.readouterr().out

        assert "STRESS TEST RESULTS" in out
        assert "Error Rate:          80.00%" in out
        assert "network error" in out
        assert "BUSINESS CODES" in out
        assert "Error (2 occurrences): timeout" in out


@pytest.mark.unit
class TestCharts:
    def test_chart_written(self, tmp_path, points):
        path = tmp_path / "chart.png"
        saved = generate_charts(points, output_path=str(path))
        assert saved == str(path)
        assert path.stat().st_size > 0

    def test_no_points(self, capsys):
        assert generate_charts([]) is None
        assert "No time series points" in capsys.readouterr().out
