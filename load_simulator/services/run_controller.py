"""Run controller orchestrating pacer, worker pool and aggregator for one run."""

import asyncio
import time
import uuid
from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime

from opentelemetry import trace
from pydantic import ValidationError

from load_simulator.config import settings
from load_simulator.exceptions import ConfigurationError, RunStateError
from load_simulator.logging_config import get_logger
from load_simulator.models.outcome import Outcome
from load_simulator.models.profile import (
    AnyProfile,
    CheckProfile,
    MultiProfile,
    RpsProfile,
    revalidate_profile,
)
from load_simulator.models.request import RequestTemplate
from load_simulator.models.stats import RunReport, RunStatistics, RunStatus
from load_simulator.services.health_checker import HealthChecker
from load_simulator.services.http_client import HttpClient
from load_simulator.services.rate_pacer import RatePacer
from load_simulator.services.result_aggregator import ResultAggregator
from load_simulator.services.worker_pool import WorkerPool, calculate_pool_size

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

PROGRESS_INTERVAL_SECONDS = 1.0


class RunController:
    """Owns one run from ``idle`` to a terminal state.

    Cancellation stops the pacer at once. In-flight requests then get the
    grace period to finish on their own; whatever is still running afterwards
    is aborted and recorded as a cancelled transport error. Outcomes that
    already completed are always kept.
    """

    def __init__(
        self,
        template: RequestTemplate,
        profile: AnyProfile,
        *,
        client: HttpClient | None = None,
        preflight: bool = False,
        run_timeout: float | None = None,
        grace_period: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize run controller.

        Args:
            template: Request to send
            profile: Load profile selecting the mode
            client: HTTP client, a fresh aiohttp-backed one per run if omitted
            preflight: Probe the target once and abort the run if it is unhealthy
            run_timeout: Cancel the run after this many seconds
            grace_period: Seconds in-flight requests may finish after cancellation
            clock: Monotonic clock used for pacing and duration
        """
        self.run_id = uuid.uuid4().hex[:12]
        self.template = template
        self.profile = profile
        self.preflight = preflight
        self.run_timeout = run_timeout
        self.grace_period = (
            settings.cancel_grace_period_seconds if grace_period is None else grace_period
        )
        self.status = RunStatus.IDLE
        self.report: RunReport | None = None

        self._client = client
        self._clock = clock
        self._cancel_event = asyncio.Event()
        self._pacer: RatePacer | None = None
        self._pool: WorkerPool | None = None
        self._aggregator: ResultAggregator | None = None
        self._run_start: float | None = None
        self._started_at: datetime | None = None
        self._logger = logger.bind(run_id=self.run_id, mode=profile.mode.value)

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request cancellation; safe to call from signal handlers and more than once."""
        if self.status.is_terminal or self._cancel_event.is_set():
            return
        self._logger.info("Cancellation requested")
        self._cancel_event.set()
        if self._pacer is not None:
            self._pacer.stop()

    def validate(self) -> None:
        """Validate template and profile.

        Raises:
            ConfigurationError: If either is invalid, or a Multi profile targets
                different URLs than the template
        """
        self.profile = revalidate_profile(self.profile)
        try:
            self.template = RequestTemplate.model_validate(self.template.model_dump())
        except ValidationError as e:
            msg = f"Invalid request template: {e}"
            raise ConfigurationError(msg) from e

        if isinstance(self.profile, MultiProfile) and self.profile.urls != self.template.urls:
            msg = (
                f"Multi profile URLs {list(self.profile.urls)} do not match "
                f"request template URLs {list(self.template.urls)}"
            )
            raise ConfigurationError(msg)

    def target_urls(self) -> list[str]:
        """URLs this run will hit."""
        if isinstance(self.profile, MultiProfile):
            return list(self.profile.urls)
        if isinstance(self.profile, CheckProfile):
            return [self.profile.url]
        return [self.template.url]

    def current_stats(self) -> RunStatistics:
        """Statistics so far, usable while the run is in progress."""
        if self._aggregator is None or self._run_start is None:
            return RunStatistics()
        return self._snapshot(self._clock() - self._run_start)

    async def run(self) -> RunReport:
        """Execute the run.

        Returns:
            Frozen run report

        Raises:
            ConfigurationError: If the configuration is invalid; no request is sent
            RunStateError: If this controller has already been started
        """
        if self.status is not RunStatus.IDLE:
            msg = f"Run {self.run_id} already started"
            raise RunStateError(msg)

        self.validate()

        self.status = RunStatus.RUNNING
        self._started_at = datetime.now(UTC)
        self._logger.info(
            "Run started",
            method=self.template.method.value,
            urls=self.target_urls(),
            expected_dispatches=self.profile.total_dispatches,
        )

        client = self._client or HttpClient()
        owns_client = self._client is None

        with tracer.start_as_current_span("load_simulator.run") as span:
            span.set_attribute("load_simulator.run_id", self.run_id)
            span.set_attribute("load_simulator.mode", self.profile.mode.value)
            try:
                await client.open()
                preflight_outcome = None
                if self.preflight:
                    preflight_outcome = await self._run_preflight(client)
                    if not preflight_outcome.is_success:
                        return self._finish(
                            RunStatus.ABORTED, preflight_outcome, "Pre-flight check failed"
                        )
                if self._cancel_event.is_set():
                    return self._finish(RunStatus.CANCELLED, preflight_outcome)

                await self._execute(client)
                status = RunStatus.CANCELLED if self._cancel_event.is_set() else RunStatus.COMPLETED
                report = self._finish(status, preflight_outcome)
                span.set_attribute("load_simulator.total_requests", report.stats.total_requests)
                return report
            except asyncio.CancelledError:
                # The surrounding task was cancelled, keep the partial results
                self._cancel_event.set()
                if self._pacer is not None:
                    self._pacer.stop()
                if self._pool is not None:
                    await self._pool.abort()
                self._finish(RunStatus.CANCELLED, None)
                raise
            finally:
                if owns_client:
                    await client.close()

    async def _run_preflight(self, client: HttpClient) -> Outcome:
        checker = HealthChecker(client, self.template)
        result = await checker.check(self.target_urls()[0])
        if not result.healthy:
            self._logger.warning(
                "Pre-flight check failed, aborting run",
                result=result.outcome.result.model_dump(mode="json"),
            )
        return result.outcome

    async def _execute(self, client: HttpClient) -> None:
        self._aggregator = ResultAggregator()
        self._pool = WorkerPool(
            client, self.template, self._aggregator, calculate_pool_size(self.profile)
        )
        self._pacer = RatePacer(self.profile, self.template.url, clock=self._clock)
        if self._cancel_event.is_set():
            self._pacer.stop()

        loop = asyncio.get_running_loop()
        timeout_handle = None
        if self.run_timeout is not None:
            timeout_handle = loop.call_later(self.run_timeout, self._on_run_timeout)

        progress_task = None
        if isinstance(self.profile, RpsProfile):
            progress_task = asyncio.create_task(self._log_progress_periodically())

        self._run_start = self._clock()
        try:
            async for dispatch in self._pacer.dispatches():
                self._pool.submit(dispatch)
            await self._wait_for_completion(self._pool)
        finally:
            if timeout_handle is not None:
                timeout_handle.cancel()
            if progress_task is not None:
                progress_task.cancel()
                with suppress(asyncio.CancelledError):
                    await progress_task

    async def _wait_for_completion(self, pool: WorkerPool) -> None:
        """Wait until every dispatch has an outcome, honouring cancellation."""
        drain_task = asyncio.create_task(pool.drain())
        cancel_task = asyncio.create_task(self._cancel_event.wait())
        try:
            await asyncio.wait({drain_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (drain_task, cancel_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(drain_task, cancel_task, return_exceptions=True)

        if pool.in_flight == 0:
            return

        self._logger.info(
            "Waiting for in-flight requests",
            in_flight=pool.in_flight,
            grace_period=self.grace_period,
        )
        if not await pool.drain(timeout=self.grace_period):
            self._logger.warning(
                "Grace period elapsed, aborting requests", in_flight=pool.in_flight
            )
            await pool.abort()

    def _on_run_timeout(self) -> None:
        self._logger.warning("Run timeout reached", run_timeout=self.run_timeout)
        self.cancel()

    async def _log_progress_periodically(self) -> None:
        """Log running statistics every second."""
        while True:
            await asyncio.sleep(PROGRESS_INTERVAL_SECONDS)
            stats = self.current_stats()
            self._logger.info(
                "Run progress",
                total_requests=stats.total_requests,
                successful_requests=stats.successful_requests,
                in_flight=self._pool.in_flight if self._pool else 0,
                achieved_rps=round(stats.achieved_rps, 2),
            )

    def _snapshot(self, duration_seconds: float) -> RunStatistics:
        assert self._aggregator is not None
        target_rps = None
        if isinstance(self.profile, RpsProfile):
            target_rps = float(self.profile.rate)
        return self._aggregator.snapshot(
            duration_seconds,
            skipped_dispatches=self._pacer.skipped if self._pacer else 0,
            target_rps=target_rps,
        )

    def _finish(
        self,
        status: RunStatus,
        preflight_outcome: Outcome | None,
        error_message: str | None = None,
    ) -> RunReport:
        self.status = status

        stats = RunStatistics()
        failed_samples: list[Outcome] = []
        if self._aggregator is not None and self._run_start is not None:
            stats = self._snapshot(self._clock() - self._run_start)
            failed_samples = self._aggregator.failed_samples()

        self.report = RunReport(
            run_id=self.run_id,
            mode=self.profile.mode,
            status=status,
            method=self.template.method.value,
            urls=self.target_urls(),
            started_at=self._started_at,
            stopped_at=datetime.now(UTC),
            stats=stats,
            preflight=preflight_outcome,
            failed_samples=failed_samples,
            error_message=error_message,
        )
        self._logger.info(
            "Run finished",
            status=status.value,
            total_requests=stats.total_requests,
            successful_requests=stats.successful_requests,
            http_errors=stats.http_errors,
            transport_errors=stats.transport_errors,
            duration_seconds=round(stats.duration_seconds, 3),
            achieved_rps=round(stats.achieved_rps, 2),
        )
        return self.report
