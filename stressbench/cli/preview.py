"""CLI that prints the planned ramp-up curve without sending requests."""

import argparse
import sys

from ..core.models import RampUpConfig
from ..core.rate_controller import RateController
from ..errors import ConfigError
from .arguments import add_ramp_up_arguments, build_ramp_up


def main():
    """Main entry point for ramp-up preview CLI."""
    parser = argparse.ArgumentParser(
        description="Preview the target QPS curve of a ramp-up configuration"
    )
    parser.add_argument("--qps", type=float, required=True, help="Target requests per second")
    parser.add_argument(
        "--duration",
        type=float,
        required=True,
        help="Test duration in seconds after the ramp-up",
    )
    parser.add_argument(
        "--points",
        type=int,
        default=50,
        help="Maximum number of intervals to sample (default: 50)",
    )
    add_ramp_up_arguments(parser)
    args = parser.parse_args()

    ramp_up = build_ramp_up(args) or RampUpConfig(enabled=False)
    try:
        ramp_up.validate(args.qps)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    controller = RateController(args.qps, ramp_up)
    total_duration = args.duration + (ramp_up.duration if ramp_up.enabled else 0)

    print(f"\nTarget QPS over {total_duration:g}s")
    if ramp_up.enabled:
        print(f"Ramp-up: {ramp_up.mode}, {ramp_up.start_qps:g} -> {args.qps:g} QPS in {ramp_up.duration:g}s")
        if controller.step_size is not None:
            print(f"Step: +{controller.step_size:g} QPS every {ramp_up.step_interval:g}s")
    print("-" * 40)
    samples = controller.preview(total_duration, args.points)
    peak = max(qps for _, qps in samples)
    for elapsed, qps in samples:
        bar = "#" * int(round(qps / peak * 30)) if peak else ""
        print(f"{elapsed:8.1f}s {qps:8.2f}  {bar}")


if __name__ == "__main__":
    main()
