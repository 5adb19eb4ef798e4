"""Tests for the load-simulator command line interface."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from load_simulator.cli import build_parser, build_run_config, load_url_file, main
from load_simulator.exceptions import ConfigurationError
from load_simulator.models.profile import (
    BurstProfile,
    CheckProfile,
    LoadMode,
    MultiProfile,
    RpsProfile,
    UrlDistribution,
)
from load_simulator.models.request import HttpMethod
from load_simulator.models.stats import RunReport, RunStatus
from load_simulator.reporting import (
    EXIT_ABORTED,
    EXIT_CANCELLED,
    EXIT_CONFIGURATION_ERROR,
    EXIT_OK,
    EXIT_UNHEALTHY,
)


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestLoadUrlFile:
    """Test URL file loading."""

    def test_skips_blank_lines_and_comments(self, tmp_path):
        """Test only URL lines are returned."""
        url_file = tmp_path / "urls.txt"
        url_file.write_text(
            "# targets\nhttp://a.test/\n\n  http://b.test/  \n# http://c.test/\n",
            encoding="utf-8",
        )

        assert load_url_file(str(url_file)) == ["http://a.test/", "http://b.test/"]

    def test_empty_file(self, tmp_path):
        """Test a file without URLs is a configuration error."""
        url_file = tmp_path / "urls.txt"
        url_file.write_text("# nothing here\n\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_url_file(str(url_file))

    def test_missing_file(self, tmp_path):
        """Test an unreadable file is a configuration error."""
        with pytest.raises(ConfigurationError):
            load_url_file(str(tmp_path / "missing.txt"))


class TestBuildRunConfig:
    """Test translation of arguments into template and profile."""

    def test_burst(self):
        """Test burst arguments."""
        template, profile = build_run_config(
            parse("burst", "-U", "http://localhost/users", "-X", "get", "-u", "50")
        )

        assert template.method is HttpMethod.GET
        assert template.url == "http://localhost/users"
        assert isinstance(profile, BurstProfile)
        assert profile.concurrency == 50

    def test_rps_with_body_and_headers(self):
        """Test RPS arguments with body, headers and content type."""
        template, profile = build_run_config(
            parse(
                "rps",
                "-U",
                "http://localhost/login",
                "-d",
                "username=admin&password=123",
                "-H",
                "X-Test: 1",
                "-c",
                "application/x-www-form-urlencoded",
                "-r",
                "20",
                "-D",
                "10",
            )
        )

        assert template.body == b"username=admin&password=123"
        assert template.headers == (
            ("X-Test", "1"),
            ("Content-Type", "application/x-www-form-urlencoded"),
        )
        assert isinstance(profile, RpsProfile)
        assert profile.total_dispatches == 200

    def test_multi_url_list(self):
        """Test a comma-separated URL list."""
        template, profile = build_run_config(
            parse(
                "multi",
                "-L",
                "http://a.test/, http://b.test/",
                "-u",
                "30",
                "--distribution",
                "weighted",
                "--weights",
                "1,3",
            )
        )

        assert isinstance(profile, MultiProfile)
        assert profile.urls == ("http://a.test/", "http://b.test/")
        assert profile.distribution is UrlDistribution.WEIGHTED
        assert profile.weights == (1.0, 3.0)
        assert template.urls == profile.urls

    def test_multi_url_file(self, tmp_path):
        """Test URLs read from a file."""
        url_file = tmp_path / "urls.txt"
        url_file.write_text("http://a.test/\nhttp://b.test/\n", encoding="utf-8")

        _, profile = build_run_config(parse("multi", "-f", str(url_file)))

        assert profile.urls == ("http://a.test/", "http://b.test/")

    def test_check(self):
        """Test check arguments."""
        _, profile = build_run_config(parse("check", "-U", "http://localhost/health"))

        assert isinstance(profile, CheckProfile)
        assert profile.url == "http://localhost/health"

    @pytest.mark.parametrize(
        "argv",
        [
            ("burst", "-U", "http://localhost/", "-u", "0"),
            ("rps", "-U", "http://localhost/", "-r", "0"),
            ("burst", "-U", "localhost"),
            ("burst", "-U", "http://localhost/", "-H", "broken"),
            ("multi", "-L", " , "),
            ("multi", "-L", "http://a.test/", "--weights", "x"),
        ],
    )
    def test_invalid_arguments(self, argv):
        """Test invalid values raise a configuration error."""
        with pytest.raises(ConfigurationError):
            build_run_config(parse(*argv))

    def test_multi_requires_targets(self):
        """Test multi mode needs a URL list or file."""
        with pytest.raises(SystemExit):
            parse("multi")


class TestMain:
    """Test the CLI entry point."""

    def test_configuration_error_exit_code(self, capsys):
        """Test configuration errors exit with the configuration error code."""
        exit_code = main(["burst", "-U", "ftp://localhost/", "-u", "5"])

        assert exit_code == EXIT_CONFIGURATION_ERROR
        assert "Configuration error" in capsys.readouterr().err

    def test_check_dry_run(self, capsys):
        """Test check with dry run prints the configuration without sending."""
        exit_code = main(
            ["check", "-U", "http://localhost/login", "-X", "POST", "-d", '{"a": 1}', "--dry-run"]
        )

        out = capsys.readouterr().out
        assert exit_code == EXIT_OK
        assert "http://localhost/login" in out
        assert "json" in out
        assert "Probe" not in out

    def test_check_unreachable(self, refused_url, capsys):
        """Test check probing an unreachable target is unhealthy."""
        exit_code = main(["--log-level", "ERROR", "check", "-U", refused_url, "-X", "GET"])

        assert exit_code == EXIT_UNHEALTHY
        assert "unhealthy" in capsys.readouterr().out

    def test_burst_unreachable_json_report(self, refused_url, capsys):
        """Test a run against an unreachable target completes and prints JSON."""
        exit_code = main(
            ["--log-level", "ERROR", "burst", "-U", refused_url, "-u", "3", "--format", "json"]
        )

        report = json.loads(capsys.readouterr().out)
        assert exit_code == EXIT_OK
        assert report["status"] == "completed"
        assert report["stats"]["total_requests"] == 3
        assert report["stats"]["transport_errors"] == 3

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (RunStatus.COMPLETED, EXIT_OK),
            (RunStatus.CANCELLED, EXIT_CANCELLED),
            (RunStatus.ABORTED, EXIT_ABORTED),
        ],
    )
    def test_exit_code_follows_status(self, status, expected, capsys):
        """Test the exit code reflects the terminal run status."""
        report = RunReport(
            run_id="abc123",
            mode=LoadMode.BURST,
            status=status,
            method="GET",
            urls=["http://localhost/"],
        )
        with patch("load_simulator.cli.RunController") as mock_controller_class:
            mock_controller_class.return_value.run = AsyncMock(return_value=report)
            exit_code = main(["burst", "-U", "http://localhost/", "-u", "1"])

        assert exit_code == expected
        assert status.value.upper() in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_run_against_server(self, url_for, received, capsys):
        """Test a full run through the CLI reaches the server."""
        url_list = f"{url_for('/ok')},{url_for('/status/201')}"
        argv = ["--log-level", "ERROR", "multi", "-L", url_list, "-u", "4", "-X", "GET"]

        exit_code = await asyncio.to_thread(main, argv)

        assert exit_code == EXIT_OK
        assert len(received) == 4
        assert "Per URL" in capsys.readouterr().out
