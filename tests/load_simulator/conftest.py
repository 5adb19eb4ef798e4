"""Shared fixtures for load simulator tests."""

import asyncio
import logging
import socket

import pytest
import structlog
from aiohttp import web
from aiohttp.test_utils import TestServer


async def _record(request: web.Request) -> None:
    body = await request.read()
    request.app["requests"].append(
        {
            "method": request.method,
            "path": request.path,
            "headers": request.headers.copy(),
            "body": body,
        }
    )


async def ok_handler(request: web.Request) -> web.Response:
    await _record(request)
    return web.Response(text="ok")


async def status_handler(request: web.Request) -> web.Response:
    await _record(request)
    return web.Response(status=int(request.match_info["code"]))


async def slow_handler(request: web.Request) -> web.Response:
    await _record(request)
    await asyncio.sleep(float(request.query.get("delay", "1")))
    return web.Response(text="slow")


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers and structlog config left behind by configure_logging."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root_logger.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
async def target_server():
    """Start a local HTTP server recording every request it receives."""
    app = web.Application()
    app["requests"] = []
    app.router.add_route("*", "/ok", ok_handler)
    app.router.add_route("*", "/status/{code}", status_handler)
    app.router.add_route("*", "/slow", slow_handler)

    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def received(target_server):
    """Requests received by the target server."""
    return target_server.app["requests"]


@pytest.fixture
def url_for(target_server):
    """Build absolute URLs on the target server."""

    def make(path):
        return str(target_server.make_url(path))

    return make


@pytest.fixture
def refused_url():
    """URL on a local port with nothing listening."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/api/test"
