"""Outcome models for single request attempts."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

HTTP_ERROR_THRESHOLD = 400


class OutcomeKind(str, Enum):
    """Classification of a request attempt."""

    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"


class TransportErrorKind(str, Enum):
    """Distinct transport-level failure causes."""

    CONNECT = "connect"
    TIMEOUT = "timeout"
    TLS = "tls"
    DNS = "dns"
    CANCELLED = "cancelled"
    PROTOCOL = "protocol"
    OTHER = "other"


class Success(BaseModel):
    """Server responded with a status below 400."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.SUCCESS] = OutcomeKind.SUCCESS
    status_code: int


class HttpError(BaseModel):
    """Server responded with a status of 400 or above."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.HTTP_ERROR] = OutcomeKind.HTTP_ERROR
    status_code: int


class TransportError(BaseModel):
    """No HTTP response was received."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.TRANSPORT_ERROR] = OutcomeKind.TRANSPORT_ERROR
    error_kind: TransportErrorKind
    detail: str = ""


OutcomeResult = Annotated[Success | HttpError | TransportError, Field(discriminator="kind")]


def classify_status(status_code: int) -> Success | HttpError:
    """Classify an HTTP status code.

    3xx responses that were not followed count as successes: the server
    answered and the request did not fail.
    """
    if status_code >= HTTP_ERROR_THRESHOLD:
        return HttpError(status_code=status_code)
    return Success(status_code=status_code)


class Outcome(BaseModel):
    """Immutable record of one completed request attempt."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0, description="Dispatch number within the run")
    started_at: datetime = Field(description="When the request was sent (UTC)")
    latency_ms: float = Field(ge=0.0, description="Time from send to completion or failure")
    target_url: str = Field(description="URL this attempt hit")
    result: OutcomeResult

    @property
    def kind(self) -> OutcomeKind:
        return self.result.kind

    @property
    def status_code(self) -> int | None:
        if isinstance(self.result, TransportError):
            return None
        return self.result.status_code

    @property
    def is_success(self) -> bool:
        return self.result.kind is OutcomeKind.SUCCESS
