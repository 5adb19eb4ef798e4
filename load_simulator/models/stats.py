"""Run statistics and report models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from load_simulator.exceptions import CancellationError, RunAbortedError
from load_simulator.models.outcome import Outcome
from load_simulator.models.profile import LoadMode


class RunStatus(str, Enum):
    """Run controller lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.CANCELLED, RunStatus.ABORTED)


class LatencySummary(BaseModel):
    """Latency distribution in milliseconds."""

    model_config = ConfigDict(frozen=True)

    min_ms: float = 0.0
    max_ms: float = 0.0
    mean_ms: float = 0.0
    p50_ms: float = 0.0
    p90_ms: float = 0.0
    p99_ms: float = 0.0


class UrlStats(BaseModel):
    """Per-target breakdown."""

    model_config = ConfigDict(frozen=True)

    total_requests: int = 0
    successful_requests: int = 0
    avg_latency_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests * 100.0


class RunStatistics(BaseModel):
    """Frozen statistics for one run."""

    model_config = ConfigDict(frozen=True)

    total_requests: int = 0
    successful_requests: int = 0
    http_errors: int = 0
    transport_errors: int = 0
    transport_errors_by_kind: dict[str, int] = Field(default_factory=dict)
    status_codes: dict[int, int] = Field(default_factory=dict)
    latency: LatencySummary = Field(default_factory=LatencySummary)
    per_url: dict[str, UrlStats] = Field(default_factory=dict)
    duration_seconds: float = 0.0
    achieved_rps: float = Field(
        default=0.0, description="Completed requests divided by wall-clock duration"
    )
    skipped_dispatches: int = Field(
        default=0, description="RPS ticks skipped because the pacer fell behind"
    )
    target_rps: float | None = None
    rps_accuracy: float | None = Field(
        default=None, description="Achieved RPS as a percentage of the target"
    )

    @property
    def failed_requests(self) -> int:
        return self.http_errors + self.transport_errors

    @property
    def success_rate(self) -> float:
        """Successful requests as a percentage; HTTP errors do not count."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests * 100.0


class RunReport(BaseModel):
    """Final output of a run handed to the reporter."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    mode: LoadMode
    status: RunStatus
    method: str
    urls: list[str]
    started_at: datetime | None = None
    stopped_at: datetime | None = None
    stats: RunStatistics = Field(default_factory=RunStatistics)
    preflight: Outcome | None = Field(
        default=None, description="Pre-flight probe outcome when one was requested"
    )
    failed_samples: list[Outcome] = Field(
        default_factory=list, description="First few failed outcomes for diagnostics"
    )
    error_message: str | None = None

    @property
    def is_partial(self) -> bool:
        return self.status is not RunStatus.COMPLETED

    def raise_for_status(self) -> None:
        """Raise if the run did not complete.

        Raises:
            CancellationError: If the run was cancelled
            RunAbortedError: If the pre-flight check aborted the run
        """
        if self.status is RunStatus.CANCELLED:
            msg = f"Run {self.run_id} was cancelled after {self.stats.total_requests} requests"
            raise CancellationError(msg)
        if self.status is RunStatus.ABORTED:
            msg = f"Run {self.run_id} was aborted: {self.error_message or 'pre-flight failed'}"
            raise RunAbortedError(msg)
