"""Run report formatting and exit-code mapping."""

import json
from enum import Enum

from load_simulator.models.outcome import TransportError
from load_simulator.models.stats import RunReport, RunStatus

EXIT_OK = 0
EXIT_UNHEALTHY = 1
EXIT_ABORTED = 2
EXIT_CONFIGURATION_ERROR = 64
EXIT_CANCELLED = 130


class ReportFormat(str, Enum):
    """Available report formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def exit_code_for(report: RunReport) -> int:
    """Map a run's terminal state to a process exit code."""
    if report.status is RunStatus.COMPLETED:
        return EXIT_OK
    if report.status is RunStatus.ABORTED:
        return EXIT_ABORTED
    return EXIT_CANCELLED


def generate_recommendations(report: RunReport) -> list[str]:
    """Generate recommendations from the run statistics."""
    stats = report.stats
    recommendations = []

    if report.status is RunStatus.CANCELLED:
        recommendations.append("Run was cancelled - statistics cover a partial run only")
    if report.status is RunStatus.ABORTED:
        recommendations.append("Pre-flight check failed - verify the target is reachable")
        return recommendations

    if stats.total_requests and stats.success_rate < 95:
        if stats.transport_errors > stats.http_errors:
            recommendations.append(
                "Transport errors dominate - check connectivity, DNS and timeouts"
            )
        else:
            recommendations.append("Warning: Success rate below 95% - investigate error causes")

    if stats.latency.p99_ms > 1000:
        recommendations.append("High tail latency detected - consider scaling or optimization")

    if stats.target_rps and stats.rps_accuracy is not None:
        if stats.rps_accuracy < 75:
            recommendations.append(
                "Throughput significantly below target - target or client may be bottlenecked"
            )
        elif stats.rps_accuracy < 90:
            recommendations.append("Throughput slightly below target")
    if stats.skipped_dispatches:
        recommendations.append(
            f"{stats.skipped_dispatches} dispatches skipped because the pacer fell behind"
        )

    if not recommendations:
        recommendations.append("Performance appears normal")
    return recommendations


def format_report_as_text(report: RunReport) -> str:
    """Format run report as plain text."""
    stats = report.stats
    lines = [
        "Load test results",
        "=" * 40,
        f"Run ID:            {report.run_id}",
        f"Mode:              {report.mode.value}",
        f"Status:            {report.status.value.upper()}"
        + (" (partial)" if report.is_partial else ""),
        f"Method:            {report.method}",
        f"URLs:              {', '.join(report.urls)}",
        "",
        f"Total requests:    {stats.total_requests}",
        f"Successful:        {stats.successful_requests} ({stats.success_rate:.1f}%)",
        f"HTTP errors:       {stats.http_errors}",
        f"Transport errors:  {stats.transport_errors}",
        f"Duration:          {stats.duration_seconds:.2f}s",
        f"Achieved RPS:      {stats.achieved_rps:.1f}",
    ]
    if stats.target_rps is not None:
        lines.append(f"Target RPS:        {stats.target_rps:.1f} ({stats.rps_accuracy:.1f}%)")
    if stats.skipped_dispatches:
        lines.append(f"Skipped ticks:     {stats.skipped_dispatches}")

    if stats.total_requests:
        lines += [
            "",
            "Latency (ms):",
            f"  min {stats.latency.min_ms:.2f}  mean {stats.latency.mean_ms:.2f}"
            f"  max {stats.latency.max_ms:.2f}",
            f"  p50 {stats.latency.p50_ms:.2f}  p90 {stats.latency.p90_ms:.2f}"
            f"  p99 {stats.latency.p99_ms:.2f}",
        ]

    if stats.status_codes:
        lines += ["", "Status codes:"]
        lines += [f"  {code}: {count}" for code, count in stats.status_codes.items()]

    if stats.transport_errors_by_kind:
        lines += ["", "Transport errors:"]
        lines += [f"  {kind}: {count}" for kind, count in stats.transport_errors_by_kind.items()]

    if len(stats.per_url) > 1:
        lines += ["", "Per URL:"]
        for url, url_stats in stats.per_url.items():
            lines.append(
                f"  {url}: {url_stats.successful_requests}/{url_stats.total_requests} ok"
                f" ({url_stats.success_rate:.1f}%), avg {url_stats.avg_latency_ms:.2f}ms"
            )

    if report.failed_samples:
        lines += ["", f"Failed requests (first {len(report.failed_samples)}):"]
        for outcome in report.failed_samples:
            result = outcome.result
            if isinstance(result, TransportError):
                reason = f"{result.error_kind.value} {result.detail}"
            else:
                reason = f"HTTP {result.status_code}"
            lines.append(f"  #{outcome.sequence + 1} {outcome.target_url}: {reason}")

    if report.error_message:
        lines += ["", f"Error: {report.error_message}"]

    return "\n".join(lines) + "\n"


def format_report_as_markdown(report: RunReport) -> str:
    """Format run report as Markdown."""
    stats = report.stats
    md = f"""# Load Test Report

## Run Summary
- **Run ID**: {report.run_id}
- **Mode**: {report.mode.value}
- **Status**: {report.status.value.upper()}

## Request
- **Method**: {report.method}
- **URLs**: {", ".join(report.urls)}

## Execution Timeline
- **Started**: {report.started_at.isoformat() if report.started_at else "N/A"}
- **Stopped**: {report.stopped_at.isoformat() if report.stopped_at else "N/A"}
- **Duration**: {stats.duration_seconds:.1f}s

## Performance Metrics
- **Total Requests**: {stats.total_requests:,}
- **Successful**: {stats.successful_requests:,} ({stats.success_rate:.1f}%)
- **HTTP Errors**: {stats.http_errors:,}
- **Transport Errors**: {stats.transport_errors:,}
- **Latency p50/p90/p99**: {stats.latency.p50_ms:.1f} / {stats.latency.p90_ms:.1f} / \
{stats.latency.p99_ms:.1f} ms
- **Achieved RPS**: {stats.achieved_rps:.2f}

## Recommendations
"""

    for i, rec in enumerate(generate_recommendations(report), 1):
        md += f"{i}. {rec}\n"

    if report.error_message:
        md += f"\n## Error Details\n```\n{report.error_message}\n```\n"

    return md


def format_report(report: RunReport, fmt: ReportFormat | str = ReportFormat.TEXT) -> str:
    """Render a run report.

    Args:
        report: Frozen run report
        fmt: Output format

    Returns:
        Rendered report
    """
    report_format = ReportFormat(fmt)
    if report_format is ReportFormat.JSON:
        payload = report.model_dump(mode="json")
        payload["success_rate"] = report.stats.success_rate
        return json.dumps(payload, indent=2) + "\n"
    if report_format is ReportFormat.MARKDOWN:
        return format_report_as_markdown(report)
    return format_report_as_text(report)
