"""Single-request health probe."""

from pydantic import BaseModel, ConfigDict

from load_simulator.logging_config import get_logger
from load_simulator.models.outcome import Outcome
from load_simulator.models.profile import CheckProfile
from load_simulator.models.request import RequestTemplate
from load_simulator.services.http_client import HttpClient
from load_simulator.services.rate_pacer import RatePacer
from load_simulator.services.result_aggregator import ResultAggregator
from load_simulator.services.worker_pool import WorkerPool

logger = get_logger(__name__)


class CheckResult(BaseModel):
    """Outcome of a health probe."""

    model_config = ConfigDict(frozen=True)

    healthy: bool
    outcome: Outcome


class HealthChecker:
    """Sends exactly one request and reports whether it succeeded."""

    def __init__(self, client: HttpClient, template: RequestTemplate) -> None:
        self._client = client
        self._template = template

    async def check(self, url: str | None = None) -> CheckResult:
        """Probe ``url`` (default: the template's first URL) once.

        Returns:
            Check result; healthy only for a ``Success`` outcome
        """
        profile = CheckProfile(url=url or self._template.url)
        pacer = RatePacer(profile, profile.url)
        pool = WorkerPool(self._client, self._template, ResultAggregator(), capacity=1)

        outcome: Outcome | None = None
        async for dispatch in pacer.dispatches():
            outcome = await pool.execute(dispatch)
        assert outcome is not None

        healthy = outcome.is_success
        logger.info(
            "Health check finished",
            url=profile.url,
            healthy=healthy,
            status_code=outcome.status_code,
            latency_ms=round(outcome.latency_ms, 2),
        )
        return CheckResult(healthy=healthy, outcome=outcome)
