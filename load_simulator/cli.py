"""Command line interface for the load simulator.

Usage:
    load-simulator burst -U https://api.example.com/users -X GET -u 50
    load-simulator rps -U https://api.example.com/login -X POST -d 'user=admin' -r 20 -D 10
    load-simulator multi -L https://a.example.com,https://b.example.com -u 30
    load-simulator check -U https://api.example.com/health -X GET
"""

import argparse
import asyncio
import signal
import sys
from contextlib import suppress
from pathlib import Path

from load_simulator.config import settings
from load_simulator.exceptions import ConfigurationError
from load_simulator.logging_config import configure_logging, get_logger
from load_simulator.models.outcome import TransportError
from load_simulator.models.profile import AnyProfile, LoadMode, UrlDistribution, build_profile
from load_simulator.models.request import (
    HttpMethod,
    RequestTemplate,
    build_request_template,
    detect_body_kind,
)
from load_simulator.models.stats import RunReport
from load_simulator.reporting import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_OK,
    EXIT_UNHEALTHY,
    ReportFormat,
    exit_code_for,
    format_report,
)
from load_simulator.services.health_checker import CheckResult, HealthChecker
from load_simulator.services.http_client import HttpClient
from load_simulator.services.run_controller import RunController
from load_simulator.tracing_config import configure_tracing

logger = get_logger(__name__)


def load_url_file(path: str) -> list[str]:
    """Read target URLs from a file, one per line.

    Blank lines and lines starting with ``#`` are ignored.

    Raises:
        ConfigurationError: If the file cannot be read or lists no URLs
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read URL file {path}: {e}"
        raise ConfigurationError(msg) from e

    urls = [
        line.strip()
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if not urls:
        msg = f"No URLs found in {path}"
        raise ConfigurationError(msg)
    return urls


def _parse_weights(raw: str | None) -> tuple[float, ...] | None:
    if not raw:
        return None
    try:
        return tuple(float(part) for part in raw.split(","))
    except ValueError as e:
        msg = f"Weights must be comma-separated numbers: {raw!r}"
        raise ConfigurationError(msg) from e


def _add_request_arguments(parser: argparse.ArgumentParser, *, url_required: bool = False) -> None:
    if url_required:
        parser.add_argument("-U", "--url", required=True, help="Target URL")
    else:
        parser.add_argument("-U", "--url", default=settings.default_url, help="Target URL")
    parser.add_argument(
        "-X",
        "--method",
        type=str.upper,
        choices=[m.value for m in HttpMethod],
        default=settings.default_method,
        help="HTTP method",
    )
    parser.add_argument("-d", "--body", default=None, help="Request body, sent verbatim")
    parser.add_argument(
        "-H",
        "--header",
        dest="headers",
        action="append",
        default=[],
        help="Header in 'Name: Value' form, may be repeated",
    )
    parser.add_argument("-c", "--content-type", default=None, help="Content-Type header value")
    parser.add_argument(
        "-t", "--timeout", type=float, default=None, help="Per-request timeout in seconds"
    )


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dynamic-body",
        action="store_true",
        help="Substitute {{userId}}, {{timestamp}} and {{uuid}} in the body per request",
    )
    parser.add_argument(
        "--preflight",
        action="store_true",
        help="Send one probe first and abort the run if it fails",
    )
    parser.add_argument(
        "--run-timeout", type=float, default=None, help="Cancel the run after this many seconds"
    )
    parser.add_argument(
        "--format",
        dest="report_format",
        choices=[f.value for f in ReportFormat],
        default=ReportFormat.TEXT.value,
        help="Report format",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="load-simulator",
        description="HTTP load simulator supporting burst, sustained-rate and multi-URL runs",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=settings.log_level,
        help="Log level",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default="json" if settings.log_json else "console",
        help="Log output format",
    )
    subparsers = parser.add_subparsers(dest="mode", required=True)

    burst = subparsers.add_parser(LoadMode.BURST.value, help="Concurrent requests from N users")
    _add_request_arguments(burst)
    _add_run_arguments(burst)
    burst.add_argument(
        "-u", "--users", type=int, default=settings.default_concurrency, help="Concurrent requests"
    )

    rps = subparsers.add_parser(LoadMode.RPS.value, help="Sustained requests per second")
    _add_request_arguments(rps)
    _add_run_arguments(rps)
    rps.add_argument(
        "-r", "--rps", type=int, default=settings.default_rate, help="Requests per second"
    )
    rps.add_argument(
        "-D",
        "--duration",
        type=float,
        default=settings.default_duration_seconds,
        help="Run duration in seconds",
    )

    multi = subparsers.add_parser(LoadMode.MULTI.value, help="Burst across several URLs")
    _add_request_arguments(multi)
    _add_run_arguments(multi)
    targets = multi.add_mutually_exclusive_group(required=True)
    targets.add_argument("-L", "--url-list", help="Comma-separated list of URLs")
    targets.add_argument("-f", "--url-file", help="File with one URL per line")
    multi.add_argument(
        "-u", "--users", type=int, default=settings.default_concurrency, help="Total requests"
    )
    multi.add_argument(
        "--distribution",
        choices=[d.value for d in UrlDistribution],
        default=UrlDistribution.ROUND_ROBIN.value,
        help="How requests are spread across URLs",
    )
    multi.add_argument("--weights", default=None, help="Comma-separated weights per URL")

    check = subparsers.add_parser(LoadMode.CHECK.value, help="Validate and probe one request")
    _add_request_arguments(check, url_required=True)
    check.add_argument(
        "--dry-run", action="store_true", help="Only validate the configuration, send nothing"
    )

    return parser


def build_run_config(args: argparse.Namespace) -> tuple[RequestTemplate, AnyProfile]:
    """Translate parsed arguments into a request template and load profile.

    Raises:
        ConfigurationError: If any argument is invalid
    """
    mode = LoadMode(args.mode)

    if mode is LoadMode.MULTI:
        if args.url_file:
            urls = load_url_file(args.url_file)
        else:
            urls = [url.strip() for url in args.url_list.split(",") if url.strip()]
    else:
        urls = [args.url]

    template = build_request_template(
        urls=urls,
        method=args.method,
        headers=args.headers,
        body=args.body,
        content_type=args.content_type,
        timeout_seconds=args.timeout,
        dynamic_body=getattr(args, "dynamic_body", False),
    )

    if mode is LoadMode.BURST:
        profile = build_profile(mode, concurrency=args.users)
    elif mode is LoadMode.RPS:
        profile = build_profile(mode, rate=args.rps, duration_seconds=args.duration)
    elif mode is LoadMode.MULTI:
        profile = build_profile(
            mode,
            urls=tuple(urls),
            concurrency=args.users,
            distribution=args.distribution,
            weights=_parse_weights(args.weights),
        )
    else:
        profile = build_profile(mode, url=args.url)
    return template, profile


async def execute_run(controller: RunController) -> RunReport:
    """Run a controller with SIGINT and SIGTERM wired to cancellation."""
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, controller.cancel)
            installed.append(sig)
    try:
        return await controller.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def execute_check(template: RequestTemplate) -> CheckResult:
    """Send a single probe request."""
    async with HttpClient() as client:
        return await HealthChecker(client, template).check()


def describe_check(args: argparse.Namespace, template: RequestTemplate) -> str:
    """Describe the validated request the way the check command prints it."""
    lines = [
        "Request configuration",
        "=" * 40,
        f"URL:     {template.url}",
        f"Method:  {template.method.value}",
        f"Body:    {detect_body_kind(args.body).value}"
        + (f" ({len(template.body)} bytes)" if template.body else ""),
        f"Timeout: {template.timeout_seconds:g}s",
    ]
    if template.headers:
        lines.append("Headers:")
        lines += [f"  {name}: {value}" for name, value in template.headers]
    return "\n".join(lines) + "\n"


def run_check(args: argparse.Namespace) -> int:
    """Validate the request and, unless ``--dry-run``, probe it once."""
    template, _ = build_run_config(args)
    sys.stdout.write(describe_check(args, template))
    if args.dry_run:
        return EXIT_OK

    result = asyncio.run(execute_check(template))
    outcome = result.outcome
    if isinstance(outcome.result, TransportError):
        detail = f"{outcome.result.error_kind.value} {outcome.result.detail}".rstrip()
    else:
        detail = f"HTTP {outcome.status_code}"
    verdict = "healthy" if result.healthy else "unhealthy"
    sys.stdout.write(f"\nProbe: {verdict} - {detail} in {outcome.latency_ms:.2f}ms\n")
    return EXIT_OK if result.healthy else EXIT_UNHEALTHY


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, json_output=args.log_format == "json")
    tracer_provider = configure_tracing()

    try:
        if args.mode == LoadMode.CHECK.value:
            return run_check(args)

        template, profile = build_run_config(args)
        controller = RunController(
            template,
            profile,
            preflight=args.preflight,
            run_timeout=args.run_timeout,
        )
        report = asyncio.run(execute_run(controller))
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    finally:
        tracer_provider.shutdown()

    sys.stdout.write(format_report(report, args.report_format))
    return exit_code_for(report)


if __name__ == "__main__":
    sys.exit(main())
