"""Load profile models describing how requests are scheduled."""

import math
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from load_simulator.exceptions import ConfigurationError
from load_simulator.models.request import validate_url


class LoadMode(str, Enum):
    """Scheduling modes."""

    BURST = "burst"
    RPS = "rps"
    MULTI = "multi"
    CHECK = "check"


class UrlDistribution(str, Enum):
    """How Multi mode assigns dispatches to URLs."""

    ROUND_ROBIN = "round_robin"
    RANDOM = "random"
    SEQUENTIAL = "sequential"
    WEIGHTED = "weighted"


class BurstProfile(BaseModel):
    """Fire ``concurrency`` requests at once and wait for all of them."""

    model_config = ConfigDict(frozen=True)

    mode: Literal[LoadMode.BURST] = LoadMode.BURST
    concurrency: int = Field(ge=1, description="Number of simultaneous requests")

    @property
    def total_dispatches(self) -> int:
        return self.concurrency


class RpsProfile(BaseModel):
    """Sustain ``rate`` requests per second for ``duration_seconds``."""

    model_config = ConfigDict(frozen=True)

    mode: Literal[LoadMode.RPS] = LoadMode.RPS
    rate: int = Field(ge=1, description="Target requests per second")
    duration_seconds: float = Field(ge=0.0, description="Run duration in seconds")

    @property
    def interval_seconds(self) -> float:
        return 1.0 / self.rate

    @property
    def total_dispatches(self) -> int:
        """Number of ticks ``n`` with ``n * interval < duration``."""
        # Rounding guards against 10 * 0.3 style float noise adding a tick
        return math.ceil(round(self.rate * self.duration_seconds, 9))


class MultiProfile(BaseModel):
    """Burst across several URLs chosen by ``distribution``."""

    model_config = ConfigDict(frozen=True)

    mode: Literal[LoadMode.MULTI] = LoadMode.MULTI
    urls: tuple[str, ...] = Field(min_length=1, description="Target URLs")
    concurrency: int = Field(ge=1, description="Total number of requests in the wave")
    distribution: UrlDistribution = UrlDistribution.ROUND_ROBIN
    weights: tuple[float, ...] | None = Field(
        default=None,
        description="Per-URL weights for weighted distribution, defaults to 1 each",
    )

    @model_validator(mode="after")
    def validate_targets(self) -> "MultiProfile":
        """Validate URLs and weights."""
        for url in self.urls:
            validate_url(url)
        if self.weights is not None:
            if len(self.weights) != len(self.urls):
                msg = "Number of weights must match number of URLs"
                raise ValueError(msg)
            if any(w < 0 for w in self.weights) or not any(w > 0 for w in self.weights):
                msg = "Weights must be non-negative with at least one positive weight"
                raise ValueError(msg)
        return self

    @property
    def total_dispatches(self) -> int:
        return self.concurrency


class CheckProfile(BaseModel):
    """Send exactly one request."""

    model_config = ConfigDict(frozen=True)

    mode: Literal[LoadMode.CHECK] = LoadMode.CHECK
    url: str

    @model_validator(mode="after")
    def validate_target(self) -> "CheckProfile":
        validate_url(self.url)
        return self

    @property
    def total_dispatches(self) -> int:
        return 1


AnyProfile = BurstProfile | RpsProfile | MultiProfile | CheckProfile

LoadProfile = Annotated[AnyProfile, Field(discriminator="mode")]

_profile_adapter: TypeAdapter[Any] = TypeAdapter(LoadProfile)


def build_profile(mode: LoadMode | str, **params: Any) -> AnyProfile:
    """Build a validated load profile.

    Args:
        mode: Mode selector
        **params: Mode specific fields

    Returns:
        The load profile variant for ``mode``

    Raises:
        ConfigurationError: If the mode is unknown or a field is invalid
    """
    try:
        load_mode = LoadMode(mode)
    except ValueError as e:
        msg = f"Unknown load mode {mode!r}"
        raise ConfigurationError(msg) from e

    try:
        return _profile_adapter.validate_python({"mode": load_mode, **params})
    except ValidationError as e:
        msg = f"Invalid {load_mode.value} load profile: {e}"
        raise ConfigurationError(msg) from e


def revalidate_profile(profile: AnyProfile) -> AnyProfile:
    """Re-run validation on a profile that may have been built without it.

    Raises:
        ConfigurationError: If the profile violates its constraints
    """
    data = profile.model_dump()
    return build_profile(data.pop("mode"), **data)
