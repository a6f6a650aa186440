"""CLI for a single stress test run."""

import argparse
import asyncio
import sys
from typing import Optional

from ..core.controller import TestRunController
from ..core.models import SuccessCondition, TestConfig
from ..core.template_loader import TemplateLoader
from ..core.transport import HttpTransport, ProxyTransport
from ..errors import StressBenchError
from ..presets import REQUEST_DEFAULTS, SUPPORTED_METHODS
from ..results.charts import generate_charts
from ..results.export import ResultExporter
from .arguments import (
    add_ramp_up_arguments,
    build_ramp_up,
    configure_logging,
    parse_assertion,
    parse_headers,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run an HTTP stress test against one endpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 50 QPS for 60 seconds with up to 20 requests in flight
  python -m stressbench run --url https://api.example.com/health \\
      --qps 50 --duration 60 --concurrency 20

  # 1000 POST requests, success when the body's "code" field is "0"
  python -m stressbench run --url https://api.example.com/orders \\
      --method POST -H "Content-Type: application/json" --body '{"sku": 1}' \\
      --qps 100 --total-requests 1000 --assert code:equals:0

  # Linear ramp from 5 to 200 QPS over 30s, then 120s at 200 QPS
  python -m stressbench run --url https://api.example.com/search \\
      --qps 200 --duration 120 --concurrency 100 --ramp-up-duration 30 --start-qps 5
        """,
    )

    target = parser.add_argument_group("target")
    target.add_argument("--config", type=str, help="JSON configuration template to start from")
    target.add_argument("--url", type=str, help="Target URL")
    target.add_argument("--method", type=str.upper, choices=SUPPORTED_METHODS, help="HTTP method (default: GET)")
    target.add_argument(
        "-H", "--header", action="append", dest="headers", metavar="'NAME: VALUE'",
        help="Request header (repeatable)",
    )
    body_group = target.add_mutually_exclusive_group()
    body_group.add_argument("--body", type=str, help="Request body (ignored for GET)")
    body_group.add_argument("--body-file", type=str, help="Read the request body from a file")

    load = parser.add_argument_group("load")
    load.add_argument("--qps", type=float, help="Target requests per second")
    load.add_argument("--concurrency", type=int, help="Maximum requests in flight")
    stop_group = load.add_mutually_exclusive_group()
    stop_group.add_argument("--duration", type=float, help="Test duration in seconds")
    stop_group.add_argument("--total-requests", type=int, help="Stop after this many requests")
    load.add_argument(
        "--timeout-ms", type=int,
        help=f"Per-request timeout in milliseconds (default: {REQUEST_DEFAULTS['timeout_ms']})",
    )

    checks = parser.add_argument_group("success condition")
    checks.add_argument(
        "--assert", action="append", dest="assertions", type=parse_assertion,
        metavar="FIELD:OPERATOR[:VALUE]",
        help="Response body assertion, e.g. code:equals:0 or data.id:exists (repeatable)",
    )
    checks.add_argument(
        "--logic", type=str.upper, choices=["AND", "OR"], default="AND",
        help="How multiple assertions combine (default: AND)",
    )

    add_ramp_up_arguments(parser)

    transport = parser.add_argument_group("transport")
    transport.add_argument("--proxy-url", type=str, help="Send requests through a forwarding proxy endpoint")
    transport.add_argument(
        "--insecure-ssl", action="store_true",
        help="Disable TLS certificate verification (for self-signed certs)",
    )

    output = parser.add_argument_group("output")
    output.add_argument("--output", type=str, help="Output TSV file path for per-request results")
    output.add_argument("--series-output", type=str, help="Output CSV file path for the time series")
    output.add_argument("--chart", type=str, help="Output chart PNG path")
    output.add_argument("--no-chart", action="store_true", help="Skip chart generation")
    output.add_argument("--save-template", type=str, help="Save the effective configuration as a template")
    output.add_argument(
        "--max-error-rate", type=float, default=None,
        help="Exit with status 1 when the error rate (%%) ends above this value",
    )
    output.add_argument("--quiet", action="store_true", help="Only log warnings and the final results")
    output.add_argument("--verbose", action="store_true", help="Log every failed request")
    return parser


async def build_config(args: argparse.Namespace, loader: TemplateLoader) -> TestConfig:
    """Merge command line flags over an optional template."""
    if args.config:
        config = await loader.load_config(args.config)
    else:
        config = TestConfig(url="")

    if args.url:
        config.url = args.url
    if args.method:
        config.method = args.method
    if args.headers:
        config.headers.update(parse_headers(args.headers))
    if args.body is not None:
        config.body = args.body
    elif args.body_file:
        config.body = await loader.load_body(args.body_file)
    if args.qps is not None:
        config.qps = args.qps
    if args.concurrency is not None:
        config.concurrency = args.concurrency
    if args.duration is not None:
        config.duration, config.total_requests = args.duration, None
    elif args.total_requests is not None:
        config.duration, config.total_requests = None, args.total_requests
    if args.timeout_ms is not None:
        config.timeout_ms = args.timeout_ms
    if args.assertions:
        config.success_condition = SuccessCondition(rules=args.assertions, logic=args.logic)
    ramp_up = build_ramp_up(args)
    if ramp_up is not None:
        config.ramp_up = ramp_up

    config.validate()
    return config


async def run_test(
    controller: TestRunController,
    args: argparse.Namespace,
) -> TestConfig:
    loader = TemplateLoader()
    config = await build_config(args, loader)
    if args.save_template:
        await loader.save(config, args.save_template)

    if args.proxy_url:
        transport = ProxyTransport(args.proxy_url, insecure_ssl=args.insecure_ssl)
    else:
        transport = HttpTransport(
            connection_limit=max(config.concurrency, 20), insecure_ssl=args.insecure_ssl
        )

    async with transport:
        controller.transport = transport
        try:
            await controller.run(config)
        finally:
            await controller.stop()
    return config


def report(
    controller: TestRunController,
    config: Optional[TestConfig],
    args: argparse.Namespace,
    final: bool = True,
) -> None:
    metrics = controller.metrics if final else controller.aggregator.snapshot()
    exporter = ResultExporter(controller.aggregator.results, controller.recorder.points)
    exporter.print_results(metrics, config)

    if args.output:
        exporter.to_tsv(args.output)
        print(f"\nResults saved to: {args.output}")
    if args.series_output:
        exporter.series_to_csv(args.series_output)
        print(f"Time series saved to: {args.series_output}")
    if not args.no_chart and exporter.points:
        generate_charts(exporter.points, output_path=args.chart, show=False)


def main():
    """Main entry point for the run CLI."""
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(quiet=args.quiet, verbose=args.verbose)

    if args.headers:
        try:
            parse_headers(args.headers)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))

    # Transport is attached inside the event loop
    controller = TestRunController(transport=None)

    try:
        config = asyncio.run(run_test(controller, args))
        report(controller, config, args)
    except KeyboardInterrupt:
        print("\nTest interrupted by user")
        if controller.aggregator.results:
            report(controller, controller.config, args, final=False)
        sys.exit(130)
    except StressBenchError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"Error running stress test: {e}")
        sys.exit(1)

    if args.max_error_rate is not None and controller.metrics.error_rate > args.max_error_rate:
        print(
            f"\nError rate {controller.metrics.error_rate:.2f}% exceeds "
            f"the allowed {args.max_error_rate:.2f}%"
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
