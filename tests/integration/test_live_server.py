"""End-to-end tests against a real uvicorn server.

These drive the actual /sse route over a socket, which TestClient cannot do
for a response that never completes.
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import AsyncIterator
from dataclasses import dataclass
from unittest.mock import MagicMock

import httpx
import pytest
import uvicorn
from starlette.applications import Starlette

from weather_mcp_server.protocol import CommandMessage
from weather_mcp_server.sdk import WeatherServerClient


@dataclass
class LiveServer:
    server: uvicorn.Server
    task: asyncio.Task
    url: str


@contextlib.asynccontextmanager
async def running_server(app: Starlette, graceful_timeout: float = 1.0) -> AsyncIterator[LiveServer]:
    """Serve the app on a free local port for the duration of the block."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]

    config = uvicorn.Config(
        app,
        log_level="warning",
        timeout_graceful_shutdown=graceful_timeout,
    )
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve(sockets=[sock]))

    try:
        async with asyncio.timeout(5):
            while not server.started:
                await asyncio.sleep(0.01)
        yield LiveServer(server=server, task=task, url=f"http://127.0.0.1:{port}")
    finally:
        if not task.done():
            server.should_exit = True
            await asyncio.wait_for(task, timeout=10)
        sock.close()


def make_client(url: str) -> WeatherServerClient:
    http_client = httpx.AsyncClient(base_url=url, trust_env=False)
    return WeatherServerClient(url, _http_client=http_client)


async def wait_until_empty(app: Starlette, timeout: float = 5.0) -> None:
    async with asyncio.timeout(timeout):
        while len(app.state.registry):
            await asyncio.sleep(0.05)


# =============================================================================
# Tests: Stream round trip
# =============================================================================


class TestStreamRoundTrip:
    """A command posted for an open stream comes back on that stream."""

    @pytest.mark.asyncio
    async def test_tokyo_over_sse(self, app: Starlette, fake_provider: MagicMock) -> None:
        fake_provider.fetch.return_value = "Tokyo: clear"
        command = CommandMessage.call_tool("get-weather", {"city": "Tokyo"}, request_id="r1")

        async with running_server(app) as live, make_client(live.url) as client:
            async with contextlib.aclosing(client.subscribe()) as events:
                async with asyncio.timeout(10):
                    connection = await anext(events)
                    endpoint = await anext(events)
                    ready = await anext(events)

                    assert connection.event == "connection"
                    connection_id = connection.json()["connectionId"]
                    assert endpoint.event == "endpoint"
                    assert endpoint.data == f"/messages?connectionId={connection_id}"
                    assert ready.event == "ready"
                    assert connection_id in app.state.registry

                    ack = await client.send(connection_id, command)
                    assert ack == {"received": True}

                    message = await anext(events)

            assert message.event == "message"
            payload = message.json()
            assert payload["id"] == "r1"
            assert payload["result"] == {
                "contentType": "text",
                "text": "Tokyo: clear",
                "isError": False,
            }
            fake_provider.fetch.assert_awaited_once_with("Tokyo")

            # Client went away: the session is torn down
            await wait_until_empty(app)

    @pytest.mark.asyncio
    async def test_request_helper(self, app: Starlette, fake_provider: MagicMock) -> None:
        fake_provider.fetch.return_value = "Oslo: snow"

        async with running_server(app) as live, make_client(live.url) as client:
            async with asyncio.timeout(10):
                result = await client.call_tool("get-weather", {"city": "Oslo"})

            assert result["text"] == "Oslo: snow"
            assert result["isError"] is False
            await wait_until_empty(app)


# =============================================================================
# Tests: Shutdown
# =============================================================================


class TestShutdown:
    """Server shutdown with streams still open."""

    @pytest.mark.asyncio
    async def test_shutdown_completes_with_open_stream(
        self, app: Starlette, fake_provider: MagicMock
    ) -> None:
        async with running_server(app, graceful_timeout=1.0) as live, make_client(
            live.url
        ) as client:
            async with contextlib.aclosing(client.subscribe()) as events:
                async with asyncio.timeout(10):
                    while (await anext(events)).event != "ready":
                        pass

                assert len(app.state.registry) == 1

                live.server.should_exit = True
                await asyncio.wait_for(live.task, timeout=10)

                assert len(app.state.registry) == 0
                fake_provider.aclose.assert_awaited_once()
