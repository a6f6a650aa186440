"""Chart generation for run time series."""

import matplotlib.pyplot as plt
from datetime import datetime
from typing import List, Optional

from ..core.models import TimeSeriesPoint


def generate_charts(
    points: List[TimeSeriesPoint],
    output_path: Optional[str] = None,
    show: bool = False,
    title: str = "Stress Test Results",
) -> Optional[str]:
    """
    Generate live-metric charts from a run's time series.

    Args:
        points: Time series samples to plot
        output_path: Path to save the chart (auto-generated if None)
        show: Whether to display the chart
        title: Figure title

    Returns:
        Path to saved chart file, or None if there was nothing to plot
    """
    if not points:
        print("No time series points to chart.")
        return None

    times = [p.time for p in points]
    qps = [p.qps for p in points]
    target_qps = [p.target_qps for p in points]
    latency = [p.latency for p in points]
    error_rates = [p.error_rate for p in points]
    active = [p.active_connections for p in points]

    fig, ((ax1, ax2), (ax3, ax4)) = plt.subplots(2, 2, figsize=(15, 10))
    fig.suptitle(title, fontsize=16, fontweight="bold")

    # QPS chart with the ramp-up target overlaid
    ax1.plot(times, qps, "b-", label="Actual", linewidth=2)
    ax1.plot(times, target_qps, "k--", label="Target", linewidth=1.5)
    ax1.set_xlabel("Elapsed (s)")
    ax1.set_ylabel("Requests/second")
    ax1.set_title("QPS")
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    ax2.plot(times, latency, "g-", linewidth=2)
    ax2.set_xlabel("Elapsed (s)")
    ax2.set_ylabel("Average latency (ms)")
    ax2.set_title("Latency")
    ax2.grid(True, alpha=0.3)

    ax3.plot(times, error_rates, "r-", linewidth=2)
    ax3.set_xlabel("Elapsed (s)")
    ax3.set_ylabel("Error Rate (%)")
    ax3.set_title("Error Rate")
    ax3.set_ylim(bottom=0)
    ax3.grid(True, alpha=0.3)

    ax4.step(times, active, "purple", where="post", linewidth=2)
    ax4.set_xlabel("Elapsed (s)")
    ax4.set_ylabel("In-flight requests")
    ax4.set_title("Active Connections")
    ax4.grid(True, alpha=0.3)

    plt.tight_layout()

    if output_path:
        saved_path = output_path
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        saved_path = f"stress_test_{timestamp}.png"

    plt.savefig(saved_path, dpi=150, bbox_inches="tight")
    print(f"\nChart saved as: {saved_path}")

    if show:
        plt.show()
    plt.close(fig)

    return saved_path
