"""Bounded pool of concurrent request workers."""

import asyncio
import math
import time
from datetime import UTC, datetime

from load_simulator.config import settings
from load_simulator.logging_config import get_logger
from load_simulator.models.outcome import Outcome, TransportError, TransportErrorKind
from load_simulator.models.profile import AnyProfile, RpsProfile
from load_simulator.models.request import RequestTemplate
from load_simulator.services.body_templates import render_body
from load_simulator.services.http_client import HttpClient
from load_simulator.services.rate_pacer import Dispatch
from load_simulator.services.result_aggregator import ResultAggregator

logger = get_logger(__name__)


def calculate_pool_size(profile: AnyProfile) -> int:
    """Calculate worker pool capacity for a profile.

    Burst-like modes run their whole wave at once. RPS mode sizes the pool to
    cover ``rate`` times the configured headroom of latency so pacing, not the
    pool, limits throughput.

    Args:
        profile: Load profile

    Returns:
        Maximum number of requests in flight
    """
    if isinstance(profile, RpsProfile):
        headroom = math.ceil(profile.rate * settings.rps_pool_headroom_seconds)
        return min(max(headroom, settings.min_rps_pool_size), settings.max_pool_size)
    return max(profile.total_dispatches, 1)


class WorkerPool:
    """Executes one request per dispatch with bounded concurrency.

    Every submitted dispatch produces exactly one outcome in the aggregator,
    including dispatches cancelled while queued or in flight.
    """

    def __init__(
        self,
        client: HttpClient,
        template: RequestTemplate,
        aggregator: ResultAggregator,
        capacity: int,
    ) -> None:
        """Initialize worker pool.

        Args:
            client: HTTP client shared by all workers
            template: Request to send for each dispatch
            aggregator: Destination for outcomes
            capacity: Maximum requests in flight
        """
        if capacity < 1:
            msg = "Worker pool capacity must be at least 1"
            raise ValueError(msg)

        self.capacity = capacity
        self.accepted = 0
        self.emitted = 0
        self._client = client
        self._template = template
        self._aggregator = aggregator
        self._semaphore = asyncio.Semaphore(capacity)
        self._tasks: set[asyncio.Task[None]] = set()
        self._unrecorded: dict[int, Dispatch] = {}

    @property
    def in_flight(self) -> int:
        """Dispatches accepted but without an outcome yet."""
        return self.accepted - self.emitted

    def submit(self, dispatch: Dispatch) -> asyncio.Task[None]:
        """Queue a dispatch for execution without blocking the caller.

        Args:
            dispatch: Dispatch authorized by the pacer

        Returns:
            Task that completes once the outcome has been recorded
        """
        self.accepted += 1
        self._unrecorded[dispatch.sequence] = dispatch
        task = asyncio.create_task(self._run(dispatch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight work to finish.

        Args:
            timeout: Seconds to wait, None to wait indefinitely

        Returns:
            True if every dispatch has an outcome
        """
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)
        return not self._unrecorded

    async def abort(self) -> None:
        """Cancel remaining work and wait until each cancelled dispatch is recorded."""
        tasks = list(self._tasks)
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        # Tasks cancelled before their first step never ran their handler
        for dispatch in list(self._unrecorded.values()):
            self._emit(_cancelled_outcome(dispatch, datetime.now(UTC), 0.0))

    async def execute(self, dispatch: Dispatch) -> Outcome:
        """Perform the request for one dispatch and build its outcome.

        Args:
            dispatch: Dispatch to execute

        Returns:
            Outcome of the attempt
        """
        started_at = datetime.now(UTC)
        start_time = time.perf_counter()

        body = self._template.body
        if self._template.dynamic_body:
            body = render_body(body, dispatch.sequence + 1, started_at)

        try:
            result, latency_ms = await self._client.send(
                self._template.method.value,
                dispatch.url,
                self._template.headers,
                body,
                self._template.timeout_seconds,
            )
        except Exception as e:
            logger.exception("Unexpected worker error", url=dispatch.url)
            result = TransportError(
                error_kind=TransportErrorKind.OTHER, detail=f"Unexpected error: {e}"
            )
            latency_ms = (time.perf_counter() - start_time) * 1000

        return Outcome(
            sequence=dispatch.sequence,
            started_at=started_at,
            latency_ms=latency_ms,
            target_url=dispatch.url,
            result=result,
        )

    async def _run(self, dispatch: Dispatch) -> None:
        started_at = datetime.now(UTC)
        start_time = time.perf_counter()
        try:
            async with self._semaphore:
                outcome = await self.execute(dispatch)
                self._emit(outcome)
        except asyncio.CancelledError:
            if dispatch.sequence in self._unrecorded:
                latency_ms = (time.perf_counter() - start_time) * 1000
                self._emit(_cancelled_outcome(dispatch, started_at, latency_ms))
            raise

    def _emit(self, outcome: Outcome) -> None:
        self._unrecorded.pop(outcome.sequence, None)
        self._aggregator.record(outcome)
        self.emitted += 1
        logger.debug(
            "Request completed",
            sequence=outcome.sequence,
            url=outcome.target_url,
            kind=outcome.kind.value,
            status_code=outcome.status_code,
            latency_ms=round(outcome.latency_ms, 2),
        )


def _cancelled_outcome(dispatch: Dispatch, started_at: datetime, latency_ms: float) -> Outcome:
    return Outcome(
        sequence=dispatch.sequence,
        started_at=started_at,
        latency_ms=latency_ms,
        target_url=dispatch.url,
        result=TransportError(error_kind=TransportErrorKind.CANCELLED, detail="Request cancelled"),
    )
