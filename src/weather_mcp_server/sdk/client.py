"""SDK Client - Connects to a running weather server.

Covers both transports: the direct /api/weather endpoint and the
stream-plus-messages flow.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..protocol import CommandMessage, StreamEventType
from ..transport.sse import StreamEvent, parse_sse


class WeatherClientError(Exception):
    """The server answered with an error status."""

    def __init__(self, status_code: int, body: dict[str, Any]) -> None:
        self.status_code = status_code
        self.body = body
        message = body.get("error", "Request failed")
        if body.get("details"):
            message = f"{message}: {body['details']}"
        super().__init__(f"{status_code} {message}")


@dataclass
class WeatherServerClient:
    """Async client for the weather server.

    Usage:
        async with WeatherServerClient("http://localhost:3000") as client:
            print(await client.weather("Tokyo"))
            result = await client.call_tool("get-weather", {"city": "Tokyo"})
    """

    base_url: str = "http://localhost:3000"
    timeout: float = 30.0
    _http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure client is initialized."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
            )
        return self._http_client

    @staticmethod
    def _check(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text or response.reason_phrase}
        if response.is_error:
            raise WeatherClientError(response.status_code, data)
        return data

    async def health(self) -> dict[str, Any]:
        """GET /health."""
        response = await self._ensure_client().get("/health")
        return self._check(response)

    async def weather(self, city: str) -> str:
        """Direct lookup via GET /api/weather."""
        response = await self._ensure_client().get("/api/weather", params={"city": city})
        return self._check(response)["response"]

    async def subscribe(self, connection_id: str | None = None) -> AsyncIterator[StreamEvent]:
        """Open a session stream and yield its events.

        Usage:
            async for event in client.subscribe():
                if event.event == "ready":
                    break
        """
        client = self._ensure_client()
        params = {"connectionId": connection_id} if connection_id else None

        async with client.stream(
            "GET",
            "/sse",
            params=params,
            timeout=httpx.Timeout(self.timeout, read=None),  # No read timeout for SSE
        ) as response:
            if response.is_error:
                await response.aread()
                self._check(response)

            async for event in parse_sse(response.aiter_lines()):
                yield event

    async def send(self, connection_id: str, command: CommandMessage) -> dict[str, Any]:
        """POST a command for an open stream; returns the acknowledgement."""
        response = await self._ensure_client().post(
            "/messages",
            params={"connectionId": connection_id},
            json=command.model_dump(mode="json"),
        )
        return self._check(response)

    async def request(
        self,
        command: CommandMessage,
        connection_id: str | None = None,
    ) -> Any:
        """Open a stream, send one command once ready, return its result.

        Raises:
            WeatherClientError: the server rejected the stream or the command
            ConnectionError: the stream ended before the result arrived
        """
        session_id = connection_id

        async with contextlib.aclosing(self.subscribe(connection_id)) as events:
            async for event in events:
                if event.event == StreamEventType.CONNECTION.value:
                    session_id = event.json()["connectionId"]

                elif event.event == StreamEventType.READY.value:
                    if session_id is None:
                        raise ConnectionError("Stream became ready before announcing its id")
                    await self.send(session_id, command)

                elif event.event in (StreamEventType.MESSAGE.value, StreamEventType.ERROR.value):
                    payload = event.json()
                    if payload.get("id") == command.id:
                        return payload.get("result")

        raise ConnectionError("Stream closed before the result arrived")

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """Call a tool over the streaming transport and return its envelope."""
        return await self.request(CommandMessage.call_tool(name, arguments))

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> WeatherServerClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
