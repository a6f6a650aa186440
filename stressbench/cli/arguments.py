"""Argument parsing helpers shared by the CLI commands."""

import argparse
import logging
from typing import Dict, List, Optional

from ..core.models import OPERATORS, PRESENCE_OPERATORS, AssertionRule, RampUpConfig
from ..presets import RAMP_UP_DEFAULTS


def configure_logging(quiet: bool = False, verbose: bool = False) -> None:
    level = logging.INFO
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    logging.basicConfig(
        level=level, format="%(asctime)s - %(levelname)s - %(message)s"
    )


def parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated "Name: value" arguments."""
    headers = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got '{raw}'")
        headers[name.strip()] = value.strip()
    return headers


def parse_assertion(raw: str) -> AssertionRule:
    """Parse "field:operator[:value]"; the value may itself contain colons."""
    parts = raw.split(":", 2)
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(
            f"Assertion must look like 'field:operator[:value]', got '{raw}'"
        )
    field_path, operator = parts[0].strip(), parts[1].strip()
    if operator not in OPERATORS:
        raise argparse.ArgumentTypeError(
            f"Unknown operator '{operator}' (expected one of {', '.join(OPERATORS)})"
        )
    value = parts[2] if len(parts) == 3 else None
    if value is None and operator not in PRESENCE_OPERATORS:
        raise argparse.ArgumentTypeError(f"Operator '{operator}' requires a value")
    return AssertionRule(field=field_path, operator=operator, value=value)


def add_ramp_up_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("ramp-up")
    group.add_argument(
        "--ramp-up-duration",
        type=float,
        help="Ramp-up length in seconds; enables ramp-up when given",
    )
    group.add_argument(
        "--start-qps",
        type=float,
        default=RAMP_UP_DEFAULTS["start_qps"],
        help=f"QPS at the start of the ramp (default: {RAMP_UP_DEFAULTS['start_qps']:g})",
    )
    group.add_argument(
        "--ramp-mode",
        choices=["linear", "step"],
        default=RAMP_UP_DEFAULTS["mode"],
        help="How the rate climbs (default: linear)",
    )
    group.add_argument(
        "--step-interval",
        type=float,
        default=RAMP_UP_DEFAULTS["step_interval"],
        help=f"Seconds between steps in step mode (default: {RAMP_UP_DEFAULTS['step_interval']:g})",
    )
    group.add_argument(
        "--step-size",
        type=float,
        default=None,
        help="QPS added per step (default: derived from the ramp duration)",
    )


def build_ramp_up(args: argparse.Namespace) -> Optional[RampUpConfig]:
    if args.ramp_up_duration is None:
        return None
    return RampUpConfig(
        enabled=True,
        duration=args.ramp_up_duration,
        start_qps=args.start_qps,
        mode=args.ramp_mode,
        step_interval=args.step_interval,
        step_size=args.step_size,
    )
