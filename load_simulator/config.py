"""Configuration settings for the load simulator."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SimulatorSettings(BaseSettings):
    """Load simulator settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="LOAD_SIMULATOR_",
    )

    # Request defaults
    default_url: str = "http://localhost:3000/api/test"
    default_method: str = "POST"
    request_timeout: float = 30.0

    # Load profile defaults
    default_concurrency: int = 20
    default_rate: int = 20
    default_duration_seconds: float = 10.0

    # Worker pool sizing
    rps_pool_headroom_seconds: float = 2.0  # Pool covers rate x this many seconds of latency
    min_rps_pool_size: int = 10
    max_pool_size: int = 1000
    connector_limit: int = 0  # 0 means no aiohttp connection limit

    # Cancellation
    cancel_grace_period_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Tracing
    otlp_endpoint: str | None = None
    trace_console_export: bool = False

    # Seed for random URL distribution, None for non-deterministic runs
    random_seed: int | None = None

    @field_validator("request_timeout", "rps_pool_headroom_seconds")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Validate durations that must be strictly positive."""
        if v <= 0:
            msg = "Value must be positive"
            raise ValueError(msg)
        return v

    @field_validator("cancel_grace_period_seconds", "default_duration_seconds")
    @classmethod
    def validate_non_negative_seconds(cls, v: float) -> float:
        """Validate durations that may be zero."""
        if v < 0:
            msg = "Value must be non-negative"
            raise ValueError(msg)
        return v

    @field_validator("default_concurrency", "default_rate", "min_rps_pool_size")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        """Validate counts that need at least one unit."""
        if v < 1:
            msg = "Value must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("max_pool_size")
    @classmethod
    def validate_max_pool_size(cls, v: int) -> int:
        """Validate the worker pool upper bound."""
        if v < 1:
            msg = "Maximum pool size must be positive"
            raise ValueError(msg)
        if v > 10000:
            msg = "Maximum pool size should not exceed 10000 for safety"
            raise ValueError(msg)
        return v

    @field_validator("connector_limit")
    @classmethod
    def validate_connector_limit(cls, v: int) -> int:
        """Validate aiohttp connector limit."""
        if v < 0:
            msg = "Connector limit must be non-negative"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level names."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level


# Global settings instance
settings = SimulatorSettings()
