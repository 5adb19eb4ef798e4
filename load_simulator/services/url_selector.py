"""Target URL selection for multi-URL runs."""

import math
import random

from load_simulator.models.profile import UrlDistribution


class UrlSelector:
    """Chooses the target URL for each dispatch.

    The cursor advances exactly once per call, in dispatch order, so
    round-robin and sequential assignment are independent of completion order.
    """

    def __init__(
        self,
        urls: tuple[str, ...] | list[str],
        distribution: UrlDistribution = UrlDistribution.ROUND_ROBIN,
        *,
        total: int | None = None,
        weights: tuple[float, ...] | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize URL selector.

        Args:
            urls: Candidate URLs, at least one
            distribution: Selection policy
            total: Total number of dispatches, required for sequential blocks
            weights: Per-URL weights for weighted selection
            seed: Random seed for random and weighted selection
        """
        if not urls:
            msg = "At least one URL is required"
            raise ValueError(msg)

        self.urls = tuple(urls)
        self.distribution = distribution
        self._cursor = 0
        self._rng = random.Random(seed)
        self._weights = list(weights) if weights else [1.0] * len(self.urls)
        self._block_size = math.ceil(total / len(self.urls)) if total else 1

    @property
    def cursor(self) -> int:
        return self._cursor

    def next_url(self) -> str:
        """Return the URL for the next dispatch and advance the cursor."""
        position = self._cursor
        self._cursor += 1

        if self.distribution is UrlDistribution.ROUND_ROBIN:
            return self.urls[position % len(self.urls)]
        if self.distribution is UrlDistribution.SEQUENTIAL:
            return self.urls[min(position // self._block_size, len(self.urls) - 1)]
        if self.distribution is UrlDistribution.WEIGHTED:
            return self._rng.choices(self.urls, weights=self._weights, k=1)[0]
        return self._rng.choice(self.urls)
