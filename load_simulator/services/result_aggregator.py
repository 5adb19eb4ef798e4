"""Thread-safe accumulation of request outcomes."""

import math
import threading
from collections import Counter

from load_simulator.models.outcome import Outcome, OutcomeKind, TransportError, TransportErrorKind
from load_simulator.models.stats import LatencySummary, RunStatistics, UrlStats

MAX_FAILED_SAMPLES = 10


def percentile(sorted_values: list[float], pct: float) -> float:
    """Nearest-rank percentile of an ascending list.

    Args:
        sorted_values: Values sorted in ascending order
        pct: Percentile between 0 and 100

    Returns:
        The percentile value, 0.0 for an empty list
    """
    if not sorted_values:
        return 0.0
    rank = max(1, math.ceil(pct / 100.0 * len(sorted_values)))
    return sorted_values[min(rank, len(sorted_values)) - 1]


class _UrlAccumulator:
    __slots__ = ("latency_total_ms", "successful", "total")

    def __init__(self) -> None:
        self.total = 0
        self.successful = 0
        self.latency_total_ms = 0.0


class ResultAggregator:
    """Accumulates outcomes from concurrent workers into run statistics.

    ``record`` updates every counter under a single lock, so a snapshot never
    observes a partially applied outcome.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._by_kind: Counter[OutcomeKind] = Counter()
        self._transport_by_kind: Counter[str] = Counter()
        self._status_codes: Counter[int] = Counter()
        self._latencies_ms: list[float] = []
        self._per_url: dict[str, _UrlAccumulator] = {}
        self._failed_samples: list[Outcome] = []

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    def record(self, outcome: Outcome) -> None:
        """Record one outcome.

        Args:
            outcome: Completed request attempt
        """
        with self._lock:
            self._total += 1
            self._by_kind[outcome.kind] += 1
            self._latencies_ms.append(outcome.latency_ms)

            if isinstance(outcome.result, TransportError):
                self._transport_by_kind[outcome.result.error_kind.value] += 1
            else:
                self._status_codes[outcome.result.status_code] += 1

            url_stats = self._per_url.setdefault(outcome.target_url, _UrlAccumulator())
            url_stats.total += 1
            url_stats.latency_total_ms += outcome.latency_ms
            if outcome.is_success:
                url_stats.successful += 1
            elif len(self._failed_samples) < MAX_FAILED_SAMPLES:
                self._failed_samples.append(outcome)

    def failed_samples(self) -> list[Outcome]:
        """First failed outcomes in arrival order."""
        with self._lock:
            return list(self._failed_samples)

    def snapshot(
        self,
        duration_seconds: float,
        *,
        skipped_dispatches: int = 0,
        target_rps: float | None = None,
    ) -> RunStatistics:
        """Freeze the current counters into run statistics.

        Args:
            duration_seconds: Wall-clock run duration; achieved RPS counts completed
                requests only, not those aborted by cancellation
            skipped_dispatches: Ticks the pacer skipped
            target_rps: Requested rate for RPS mode

        Returns:
            Immutable statistics
        """
        with self._lock:
            total = self._total
            latencies = sorted(self._latencies_ms)
            by_kind = dict(self._by_kind)
            transport_by_kind = dict(self._transport_by_kind)
            status_codes = dict(sorted(self._status_codes.items()))
            per_url = {
                url: UrlStats(
                    total_requests=acc.total,
                    successful_requests=acc.successful,
                    avg_latency_ms=acc.latency_total_ms / acc.total if acc.total else 0.0,
                )
                for url, acc in self._per_url.items()
            }

        latency = LatencySummary()
        if latencies:
            latency = LatencySummary(
                min_ms=latencies[0],
                max_ms=latencies[-1],
                mean_ms=sum(latencies) / len(latencies),
                p50_ms=percentile(latencies, 50),
                p90_ms=percentile(latencies, 90),
                p99_ms=percentile(latencies, 99),
            )

        # Requests aborted by cancellation never completed
        completed = total - transport_by_kind.get(TransportErrorKind.CANCELLED.value, 0)
        achieved_rps = completed / duration_seconds if duration_seconds > 0 else 0.0
        rps_accuracy = None
        if target_rps:
            rps_accuracy = achieved_rps / target_rps * 100.0

        return RunStatistics(
            total_requests=total,
            successful_requests=by_kind.get(OutcomeKind.SUCCESS, 0),
            http_errors=by_kind.get(OutcomeKind.HTTP_ERROR, 0),
            transport_errors=by_kind.get(OutcomeKind.TRANSPORT_ERROR, 0),
            transport_errors_by_kind=transport_by_kind,
            status_codes=status_codes,
            latency=latency,
            per_url=per_url,
            duration_seconds=duration_seconds,
            achieved_rps=achieved_rps,
            skipped_dispatches=skipped_dispatches,
            target_rps=target_rps,
            rps_accuracy=rps_accuracy,
        )
