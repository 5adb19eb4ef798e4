"""aiohttp-backed HTTP client used by the worker pool."""

import socket
import time
from types import TracebackType
from typing import NamedTuple

import aiohttp
from multidict import CIMultiDict

from load_simulator.config import settings
from load_simulator.logging_config import get_logger
from load_simulator.models.outcome import (
    HttpError,
    Success,
    TransportError,
    TransportErrorKind,
    classify_status,
)
from load_simulator.models.request import CONTENT_TYPE

logger = get_logger(__name__)


class SendResult(NamedTuple):
    """Classified result of one HTTP exchange."""

    result: Success | HttpError | TransportError
    latency_ms: float


def classify_exception(exc: BaseException) -> TransportError:
    """Map a client-side exception to a transport error kind.

    Args:
        exc: Exception raised while sending the request

    Returns:
        Transport error describing the failure
    """
    detail = str(exc) or type(exc).__name__

    if isinstance(exc, TimeoutError):
        kind = TransportErrorKind.TIMEOUT
    elif isinstance(exc, aiohttp.ClientSSLError):
        kind = TransportErrorKind.TLS
    elif isinstance(exc, aiohttp.ClientConnectorError):
        if isinstance(exc.os_error, socket.gaierror):
            kind = TransportErrorKind.DNS
        else:
            kind = TransportErrorKind.CONNECT
    elif isinstance(exc, aiohttp.ServerDisconnectedError | aiohttp.ClientPayloadError):
        kind = TransportErrorKind.PROTOCOL
    elif isinstance(exc, aiohttp.ClientResponseError):
        kind = TransportErrorKind.PROTOCOL
    elif isinstance(exc, ConnectionError):
        kind = TransportErrorKind.CONNECT
    else:
        kind = TransportErrorKind.OTHER

    return TransportError(error_kind=kind, detail=detail)


class HttpClient:
    """Concurrency-safe HTTP client shared by all workers of one run."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        connector_limit: int | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            session: Existing session to reuse; the client will not close it
            connector_limit: Maximum open connections, 0 for unlimited
        """
        self._session = session
        self._owns_session = session is None
        self._connector_limit = (
            settings.connector_limit if connector_limit is None else connector_limit
        )

    async def __aenter__(self) -> "HttpClient":
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the underlying session if one was not supplied."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=settings.request_timeout),
                connector=aiohttp.TCPConnector(limit=self._connector_limit),
            )
            self._owns_session = True

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def send(
        self,
        method: str,
        url: str,
        headers: tuple[tuple[str, str], ...],
        body: bytes | None,
        timeout: float,
    ) -> SendResult:
        """Send one request and classify the result.

        Network failures are returned as ``TransportError`` results, never raised.
        Cancellation propagates to the caller.

        Args:
            method: HTTP method
            url: Target URL
            headers: Ordered header pairs, repeated names allowed
            body: Raw body or None
            timeout: Total timeout in seconds

        Returns:
            Classified result and latency in milliseconds
        """
        if self._session is None:
            await self.open()
        assert self._session is not None

        request_headers = CIMultiDict(headers)
        # The request goes out exactly as specified, so no Content-Type is guessed
        skip_auto_headers = () if CONTENT_TYPE in request_headers else (CONTENT_TYPE,)

        start_time = time.perf_counter()
        try:
            async with self._session.request(
                method,
                url,
                headers=request_headers,
                data=body,
                timeout=aiohttp.ClientTimeout(total=timeout),
                skip_auto_headers=skip_auto_headers,
            ) as response:
                # Read response body to ensure full request completion
                await response.read()
                latency_ms = (time.perf_counter() - start_time) * 1000
                return SendResult(classify_status(response.status), latency_ms)
        except (TimeoutError, aiohttp.ClientError, OSError, ValueError) as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.debug("Request failed", url=url, error=repr(e))
            return SendResult(classify_exception(e), latency_ms)
