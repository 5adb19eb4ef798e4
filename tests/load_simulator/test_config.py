"""Tests for settings and logging configuration."""

import json
import logging

import pytest
from pydantic import ValidationError

from load_simulator.config import SimulatorSettings
from load_simulator.logging_config import configure_logging, get_logger


class TestSimulatorSettings:
    """Test SimulatorSettings validation."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        monkeypatch.delenv("LOAD_SIMULATOR_REQUEST_TIMEOUT", raising=False)
        settings = SimulatorSettings(_env_file=None)

        assert settings.default_method == "POST"
        assert settings.request_timeout == 30.0
        assert settings.cancel_grace_period_seconds == 5.0
        assert settings.min_rps_pool_size == 10

    def test_environment_override(self, monkeypatch):
        """Test values are read from prefixed environment variables."""
        monkeypatch.setenv("LOAD_SIMULATOR_MAX_POOL_SIZE", "250")
        monkeypatch.setenv("LOAD_SIMULATOR_LOG_LEVEL", "debug")

        settings = SimulatorSettings(_env_file=None)

        assert settings.max_pool_size == 250
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("request_timeout", 0),
            ("cancel_grace_period_seconds", -1),
            ("default_concurrency", 0),
            ("max_pool_size", 20000),
            ("connector_limit", -5),
            ("log_level", "LOUD"),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test invalid settings are rejected."""
        with pytest.raises(ValidationError):
            SimulatorSettings(_env_file=None, **{field: value})


class TestConfigureLogging:
    """Test structlog configuration."""

    def test_json_lines_to_stderr(self, capsys):
        """Test log lines are JSON on stderr with service name."""
        configure_logging("INFO", json_output=True)

        get_logger("load_simulator.test").info("Run started", run_id="abc")

        captured = capsys.readouterr()
        assert captured.out == ""
        entry = json.loads(captured.err.strip().splitlines()[-1])
        assert entry["event"] == "Run started"
        assert entry["run_id"] == "abc"
        assert entry["service"] == "load-simulator"
        assert entry["level"] == "info"

    def test_level_filtering(self, capsys):
        """Test records below the configured level are dropped."""
        configure_logging("WARNING")

        get_logger("load_simulator.test").info("hidden")

        assert "hidden" not in capsys.readouterr().err
        assert logging.getLogger().level == logging.WARNING
