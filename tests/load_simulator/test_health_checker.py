"""Unit tests for HealthChecker."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from load_simulator.models.outcome import HttpError, Success
from load_simulator.models.request import build_request_template
from load_simulator.services.health_checker import HealthChecker
from load_simulator.services.http_client import HttpClient, SendResult


class TestHealthChecker:
    """Test single-request probes."""

    @pytest.mark.asyncio
    async def test_healthy_target(self, url_for, received):
        """Test a 2xx probe is healthy and sends exactly one request."""
        template = build_request_template(urls=[url_for("/ok")], method="GET")

        async with HttpClient() as client:
            result = await HealthChecker(client, template).check()

        assert result.healthy is True
        assert result.outcome.status_code == 200
        assert result.outcome.sequence == 0
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_http_error_is_unhealthy(self, url_for):
        """Test an HTTP error probe is unhealthy."""
        template = build_request_template(urls=[url_for("/status/500")], method="GET")

        async with HttpClient() as client:
            result = await HealthChecker(client, template).check()

        assert result.healthy is False
        assert result.outcome.status_code == 500

    @pytest.mark.asyncio
    async def test_unreachable_target(self, refused_url):
        """Test a refused connection is unhealthy."""
        template = build_request_template(urls=[refused_url], method="GET")

        async with HttpClient() as client:
            result = await HealthChecker(client, template).check()

        assert result.healthy is False
        assert result.outcome.status_code is None

    @pytest.mark.asyncio
    async def test_explicit_url_overrides_template(self):
        """Test the probe can target a URL other than the template's first."""
        client = MagicMock()
        client.send = AsyncMock(return_value=SendResult(Success(status_code=204), 3.0))
        template = build_request_template(urls=["http://a.test/"], method="HEAD")

        result = await HealthChecker(client, template).check("http://b.test/health")

        assert result.healthy is True
        assert client.send.await_args.args[:2] == ("HEAD", "http://b.test/health")

    @pytest.mark.asyncio
    async def test_mocked_http_error(self):
        """Test classification uses the probe result."""
        client = MagicMock()
        client.send = AsyncMock(return_value=SendResult(HttpError(status_code=404), 3.0))
        template = build_request_template(urls=["http://a.test/"], method="GET")

        result = await HealthChecker(client, template).check()

        assert result.healthy is False
        assert client.send.await_count == 1
