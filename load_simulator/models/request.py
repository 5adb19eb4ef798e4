"""Request template models."""

import base64
import binascii
import json
from enum import Enum
from urllib.parse import parse_qsl

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from yarl import URL

from load_simulator.config import settings
from load_simulator.exceptions import ConfigurationError

CONTENT_TYPE = "Content-Type"


class HttpMethod(str, Enum):
    """HTTP methods accepted for load generation."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class BodyKind(str, Enum):
    """How a body literal would be interpreted by a reader."""

    NONE = "none"
    JSON = "json"
    FORM = "form"
    BASE64 = "base64"
    TEXT = "text"


def validate_url(url: str) -> str:
    """Validate that a URL is absolute and uses http or https.

    Args:
        url: URL string to validate

    Returns:
        The URL unchanged

    Raises:
        ValueError: If the URL cannot be used as a load target
    """
    try:
        parsed = URL(url)
    except (TypeError, ValueError) as e:
        msg = f"Invalid URL {url!r}: {e}"
        raise ValueError(msg) from e

    if parsed.scheme not in ("http", "https"):
        msg = f"Only http and https URLs are supported: {url!r}"
        raise ValueError(msg)
    if not parsed.host:
        msg = f"URL has no host: {url!r}"
        raise ValueError(msg)
    return url


def parse_header(raw: str) -> tuple[str, str]:
    """Parse a ``Name: Value`` header string.

    Raises:
        ConfigurationError: If the header has no colon or an empty name
    """
    name, sep, value = raw.partition(":")
    name = name.strip()
    if not sep or not name:
        msg = f"Malformed header {raw!r}, expected 'Name: Value'"
        raise ConfigurationError(msg)
    return name, value.strip()


def parse_headers(
    raw_headers: list[str], content_type: str | None = None
) -> tuple[tuple[str, str], ...]:
    """Parse repeated header flags, keeping order and duplicates.

    Args:
        raw_headers: Header strings in ``Name: Value`` form
        content_type: Optional Content-Type appended when not already present

    Returns:
        Ordered header pairs
    """
    headers = [parse_header(raw) for raw in raw_headers]
    if content_type and not any(name.lower() == CONTENT_TYPE.lower() for name, _ in headers):
        headers.append((CONTENT_TYPE, content_type))
    return tuple(headers)


def detect_body_kind(body: str | None) -> BodyKind:
    """Classify a body literal for display purposes.

    The body is always sent verbatim; this only describes it.
    """
    if body is None or not body.strip():
        return BodyKind.NONE

    try:
        json.loads(body)
    except ValueError:
        pass
    else:
        return BodyKind.JSON

    if "=" in body and not body.startswith(("{", "[")):
        if parse_qsl(body, strict_parsing=False):
            return BodyKind.FORM

    try:
        base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        pass
    else:
        return BodyKind.BASE64

    return BodyKind.TEXT


class RequestTemplate(BaseModel):
    """Immutable description of the request(s) to send."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod = Field(description="HTTP method")
    urls: tuple[str, ...] = Field(min_length=1, description="Target URLs in order")
    headers: tuple[tuple[str, str], ...] = Field(
        default=(),
        description="Ordered header pairs, duplicates sent as repeated headers",
    )
    body: bytes | None = Field(default=None, description="Raw request body")
    timeout_seconds: float = Field(
        default_factory=lambda: settings.request_timeout,
        gt=0,
        description="Per-request timeout in seconds",
    )
    dynamic_body: bool = Field(
        default=False,
        description="Substitute {{userId}}, {{timestamp}} and {{uuid}} placeholders per request",
    )

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: object) -> object:
        """Accept method names in any case."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Validate every target URL."""
        return tuple(validate_url(url) for url in v)

    @property
    def url(self) -> str:
        """First target URL, the only one for single-target modes."""
        return self.urls[0]


def build_request_template(
    *,
    urls: list[str] | tuple[str, ...],
    method: str | HttpMethod | None = None,
    headers: list[str] | None = None,
    body: str | bytes | None = None,
    content_type: str | None = None,
    timeout_seconds: float | None = None,
    dynamic_body: bool = False,
) -> RequestTemplate:
    """Build a validated request template from CLI-style inputs.

    Raises:
        ConfigurationError: If any input is invalid
    """
    encoded_body = body.encode("utf-8") if isinstance(body, str) else body
    fields: dict[str, object] = {
        "method": method or settings.default_method,
        "urls": tuple(url.strip() for url in urls),
        "headers": parse_headers(headers or [], content_type),
        "body": encoded_body,
        "dynamic_body": dynamic_body,
    }
    if timeout_seconds is not None:
        fields["timeout_seconds"] = timeout_seconds

    try:
        return RequestTemplate(**fields)
    except ValidationError as e:
        msg = f"Invalid request template: {e}"
        raise ConfigurationError(msg) from e
