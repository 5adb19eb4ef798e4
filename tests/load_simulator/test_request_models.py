"""Unit tests for request template models."""

import pytest

from load_simulator.exceptions import ConfigurationError
from load_simulator.models.request import (
    BodyKind,
    HttpMethod,
    RequestTemplate,
    build_request_template,
    detect_body_kind,
    parse_header,
    parse_headers,
    validate_url,
)


class TestValidateUrl:
    """Test URL validation."""

    @pytest.mark.parametrize(
        "url",
        ["http://localhost:3000/api/test", "https://api.example.com/users?page=2"],
    )
    def test_valid_urls(self, url):
        """Test absolute http and https URLs are accepted unchanged."""
        assert validate_url(url) == url

    @pytest.mark.parametrize(
        "url",
        ["ftp://example.com/file", "api.example.com/users", "http://", "not a url"],
    )
    def test_invalid_urls(self, url):
        """Test relative, hostless and non-http URLs are rejected."""
        with pytest.raises(ValueError):
            validate_url(url)


class TestHeaderParsing:
    """Test header flag parsing."""

    def test_parse_header_strips_whitespace(self):
        """Test name and value are trimmed."""
        assert parse_header("  X-Trace :  abc  ") == ("X-Trace", "abc")

    def test_parse_header_keeps_colons_in_value(self):
        """Test only the first colon separates name and value."""
        assert parse_header("Referer: http://example.com:8080/") == (
            "Referer",
            "http://example.com:8080/",
        )

    @pytest.mark.parametrize("raw", ["NoColon", ": value-only"])
    def test_malformed_header(self, raw):
        """Test malformed headers raise a configuration error."""
        with pytest.raises(ConfigurationError):
            parse_header(raw)

    def test_duplicates_preserved_in_order(self):
        """Test repeated header names are kept in order."""
        headers = parse_headers(["Cookie: a=1", "Accept: */*", "Cookie: b=2"])
        assert headers == (("Cookie", "a=1"), ("Accept", "*/*"), ("Cookie", "b=2"))

    def test_content_type_appended(self):
        """Test content type flag is added when no header sets it."""
        headers = parse_headers(["Accept: */*"], content_type="application/json")
        assert headers[-1] == ("Content-Type", "application/json")

    def test_explicit_content_type_header_wins(self):
        """Test content type flag does not override an explicit header."""
        headers = parse_headers(["content-type: text/plain"], content_type="application/json")
        assert headers == (("content-type", "text/plain"),)


class TestDetectBodyKind:
    """Test body classification."""

    @pytest.mark.parametrize(
        ("body", "kind"),
        [
            (None, BodyKind.NONE),
            ("   ", BodyKind.NONE),
            ('{"user": "alice"}', BodyKind.JSON),
            ("[1, 2, 3]", BodyKind.JSON),
            ("username=admin&password=123", BodyKind.FORM),
            ("aGVsbG8gd29ybGQ=", BodyKind.BASE64),
            ("hello world!", BodyKind.TEXT),
        ],
    )
    def test_detect(self, body, kind):
        """Test each body literal is classified as expected."""
        assert detect_body_kind(body) is kind


class TestRequestTemplate:
    """Test RequestTemplate model."""

    def test_method_normalized(self):
        """Test lower-case method names are accepted."""
        template = RequestTemplate(method="get", urls=("http://localhost/",))
        assert template.method is HttpMethod.GET

    def test_default_timeout_from_settings(self):
        """Test timeout falls back to the configured default."""
        template = RequestTemplate(method="GET", urls=("http://localhost/",))
        assert template.timeout_seconds == 30.0

    def test_template_is_frozen(self):
        """Test templates cannot be mutated."""
        template = RequestTemplate(method="GET", urls=("http://localhost/",))
        with pytest.raises(Exception):
            template.method = HttpMethod.POST

    def test_url_property_returns_first(self):
        """Test url property is the first target."""
        template = RequestTemplate(method="GET", urls=("http://a.test/", "http://b.test/"))
        assert template.url == "http://a.test/"


class TestBuildRequestTemplate:
    """Test building templates from CLI-style inputs."""

    def test_body_sent_verbatim(self):
        """Test the body is encoded without any reformatting."""
        template = build_request_template(
            urls=["http://localhost/login"],
            method="POST",
            body='{ "a" :1 }',
        )
        assert template.body == b'{ "a" :1 }'

    def test_headers_and_content_type(self):
        """Test headers are parsed and content type appended."""
        template = build_request_template(
            urls=["http://localhost/login"],
            headers=["Authorization: Bearer token"],
            content_type="application/x-www-form-urlencoded",
        )
        assert template.headers == (
            ("Authorization", "Bearer token"),
            ("Content-Type", "application/x-www-form-urlencoded"),
        )

    def test_default_method(self):
        """Test method falls back to the configured default."""
        template = build_request_template(urls=["http://localhost/"])
        assert template.method is HttpMethod.POST

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"urls": []},
            {"urls": ["ftp://localhost/"]},
            {"urls": ["http://localhost/"], "method": "BREW"},
            {"urls": ["http://localhost/"], "timeout_seconds": 0},
        ],
    )
    def test_invalid_inputs(self, kwargs):
        """Test invalid inputs raise a configuration error."""
        with pytest.raises(ConfigurationError):
            build_request_template(**kwargs)
