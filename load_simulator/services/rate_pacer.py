"""Dispatch timing for each load mode."""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from typing import NamedTuple

from load_simulator.config import settings
from load_simulator.logging_config import get_logger
from load_simulator.models.profile import (
    AnyProfile,
    CheckProfile,
    MultiProfile,
    RpsProfile,
)
from load_simulator.services.url_selector import UrlSelector

logger = get_logger(__name__)


class Dispatch(NamedTuple):
    """Authorization to send one request."""

    sequence: int  # 0-based dispatch number within the run
    url: str
    scheduled_at: float  # Pacer clock time the dispatch was due


class RatePacer:
    """Produces a finite, time-ordered sequence of dispatches.

    Burst, Multi and Check authorize every dispatch immediately. RPS schedules
    tick ``n`` at ``start + n * interval`` against a monotonic clock. When the
    pacer wakes more than one interval late it skips to the current tick
    instead of firing the backlog, and counts the ticks it skipped.
    """

    def __init__(
        self,
        profile: AnyProfile,
        default_url: str,
        *,
        clock: Callable[[], float] = time.monotonic,
        selector: UrlSelector | None = None,
    ) -> None:
        """Initialize rate pacer.

        Args:
            profile: Load profile to pace
            default_url: Target for single-URL modes
            clock: Monotonic clock in seconds
            selector: URL selector, built from the profile for Multi mode if omitted
        """
        self.profile = profile
        self.skipped = 0
        self.issued = 0
        self._clock = clock
        self._stop_event = asyncio.Event()

        if isinstance(profile, CheckProfile):
            self._default_url = profile.url
        else:
            self._default_url = default_url

        if selector is None and isinstance(profile, MultiProfile):
            selector = UrlSelector(
                profile.urls,
                profile.distribution,
                total=profile.concurrency,
                weights=profile.weights,
                seed=settings.random_seed,
            )
        self._selector = selector

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Stop issuing dispatches, waking the pacer if it is waiting."""
        self._stop_event.set()

    def _next_url(self) -> str:
        if self._selector is not None:
            return self._selector.next_url()
        return self._default_url

    async def dispatches(self) -> AsyncIterator[Dispatch]:
        """Yield dispatches until the profile is exhausted or the pacer is stopped."""
        if isinstance(self.profile, RpsProfile):
            async for dispatch in self._paced_dispatches(self.profile):
                yield dispatch
            return

        now = self._clock()
        for _ in range(self.profile.total_dispatches):
            if self.stopped:
                return
            yield self._issue(now)

    async def _paced_dispatches(self, profile: RpsProfile) -> AsyncIterator[Dispatch]:
        total_ticks = profile.total_dispatches
        interval = profile.interval_seconds
        start = self._clock()
        tick = 0

        while tick < total_ticks and not self.stopped:
            target = start + tick * interval
            now = self._clock()

            if now < target:
                await self._wait(target - now)
                if self.stopped:
                    return
            elif now - target > interval:
                current_tick = int((now - start) / interval)
                if current_tick >= total_ticks:
                    self.skipped += total_ticks - tick
                    logger.debug("Pacer ran past the last tick", skipped=total_ticks - tick)
                    return
                self.skipped += current_tick - tick
                logger.debug("Pacer fell behind, skipping ahead", skipped=current_tick - tick)
                tick = current_tick
                target = start + tick * interval

            yield self._issue(target)
            tick += 1

    def _issue(self, scheduled_at: float) -> Dispatch:
        dispatch = Dispatch(sequence=self.issued, url=self._next_url(), scheduled_at=scheduled_at)
        self.issued += 1
        return dispatch

    async def _wait(self, delay: float) -> None:
        """Sleep for ``delay`` seconds or until stopped."""
        with suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
