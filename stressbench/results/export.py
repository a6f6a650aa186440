"""Result export and console reporting."""

import pandas as pd
from typing import Dict, List, Optional

from ..core.models import RequestResult, TestConfig, TestMetrics, TimeSeriesPoint

RESULT_COLUMNS = [
    "id", "timestamp", "duration_ms", "status", "success", "error", "size_bytes", "business_code",
]
SERIES_COLUMNS = ["time", "qps", "target_qps", "latency", "error_rate", "active_connections"]


class ResultExporter:
    """Formats a finished run's results and time series for export."""

    def __init__(
        self,
        results: Optional[List[RequestResult]] = None,
        points: Optional[List[TimeSeriesPoint]] = None,
    ):
        self.results: List[RequestResult] = list(results or [])
        self.points: List[TimeSeriesPoint] = list(points or [])

    def results_dataframe(self) -> pd.DataFrame:
        """One row per recorded request, ordered by request id."""
        df = pd.DataFrame([r.to_dict() for r in self.results], columns=RESULT_COLUMNS)
        if not df.empty:
            df = df.sort_values("id").reset_index(drop=True)
        return df

    def series_dataframe(self) -> pd.DataFrame:
        """One row per time series sample."""
        return pd.DataFrame([p.to_dict() for p in self.points], columns=SERIES_COLUMNS)

    def to_csv(self, path: str) -> None:
        """Export request results to CSV file."""
        self.results_dataframe().to_csv(path, index=False)

    def to_tsv(self, path: str) -> None:
        """Export request results to TSV file."""
        self.results_dataframe().to_csv(path, sep="\t", index=False)

    def series_to_csv(self, path: str) -> None:
        """Export the time series to CSV file."""
        self.series_dataframe().to_csv(path, index=False)

    def get_tsv_string(self) -> str:
        """Get the time series as TSV string for easy copy/paste to spreadsheet."""
        return self.series_dataframe().to_csv(sep="\t", index=False)

    def error_summary(self, limit: int = 100) -> Dict[str, int]:
        """Count failed requests by (truncated) error text or HTTP status."""
        error_counts: Dict[str, int] = {}
        for r in self.results:
            if r.success:
                continue
            error_text = r.error or f"HTTP {r.status}"
            if r.error is None and r.business_code is not None:
                error_text += f" (code {r.business_code})"
            key = error_text[:limit]
            error_counts[key] = error_counts.get(key, 0) + 1
        return error_counts

    def print_results(self, metrics: TestMetrics, config: Optional[TestConfig] = None) -> None:
        """Print test results in a formatted way."""
        print("\n" + "=" * 60)
        print("STRESS TEST RESULTS")
        print("=" * 60)
        if config is not None:
            print(f"Target:              {config.method} {config.url}")
            print(f"Target QPS:          {config.qps}")
            print(f"Concurrency:         {config.concurrency}")
            print()
        print(f"Expected Requests:   {metrics.total_requests}")
        print(f"Completed Requests:  {metrics.completed_requests}")
        print(f"Successful Requests: {metrics.success_count}")
        print(f"Failed Requests:     {metrics.fail_count}")
        print(f"Error Rate:          {metrics.error_rate:.2f}%")
        print()
        print("LATENCY STATISTICS (ms)")
        print("-" * 30)
        print(f"Average:             {metrics.avg_latency:.2f}")
        print(f"Minimum:             {metrics.min_latency:.2f}")
        print(f"Maximum:             {metrics.max_latency:.2f}")
        print(f"50th Percentile:     {metrics.p50_latency:.2f}")
        print(f"90th Percentile:     {metrics.p90_latency:.2f}")
        print(f"95th Percentile:     {metrics.p95_latency:.2f}")
        print(f"99th Percentile:     {metrics.p99_latency:.2f}")
        print()
        print("THROUGHPUT")
        print("-" * 30)
        print(f"Actual Throughput:   {metrics.throughput:.2f} requests/second")
        print(f"Elapsed Time:        {metrics.elapsed_time:.1f}s")

        if metrics.status_codes:
            print()
            print("STATUS CODES")
            print("-" * 30)
            for status, count in sorted(metrics.status_codes.items()):
                label = "network error" if status == 0 else f"HTTP {status}"
                print(f"{label:<21}{count}")

        if metrics.business_codes:
            print()
            print("BUSINESS CODES")
            print("-" * 30)
            for code, count in sorted(metrics.business_codes.items(), key=lambda kv: -kv[1]):
                print(f"{code:<21}{count}")

        print("=" * 60)

        errors = self.error_summary()
        if errors:
            print("\nERROR SUMMARY")
            print("-" * 30)
            for error_key, count in sorted(errors.items(), key=lambda kv: -kv[1]):
                print(f"Error ({count} occurrences): {error_key}")
