"""Server-Sent Events (SSE) transport.

Server side: a per-session StreamChannel that buffers named events and an
async generator that drains it onto a StreamingResponse, with heartbeats and
disconnect detection.

Client side: a line parser that turns an SSE byte stream back into
StreamEvents.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from starlette.requests import Request

from ..errors import ChannelClosed

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


@dataclass
class SSEMessage:
    """A single frame on the wire.

    A frame with no event and no data is rendered as a comment line, which
    clients ignore but which keeps proxies from timing the stream out.
    """

    event: str | None = None
    data: str = ""
    comment: str | None = None

    def encode(self) -> str:
        """Render in text/event-stream format."""
        if self.comment is not None:
            return f": {self.comment}\n\n"

        lines = []
        if self.event:
            lines.append(f"event: {self.event}")
        for chunk in self.data.split("\n"):
            lines.append(f"data: {chunk}")
        return "\n".join(lines) + "\n\n"


def format_data(payload: BaseModel | dict[str, Any] | str) -> str:
    """Serialize an event payload for the data field."""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(exclude_none=True)
    if isinstance(payload, dict):
        return json.dumps(payload)
    return payload


class StreamChannel:
    """Output channel of one session.

    Writes are queued in FIFO order and drained by the streaming response.
    Once closed, any further write raises ChannelClosed.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._queue: asyncio.Queue[SSEMessage | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: str | None, payload: BaseModel | dict[str, Any] | str) -> None:
        """Queue a named event for delivery."""
        if self._closed:
            raise ChannelClosed(self.session_id)
        await self._queue.put(SSEMessage(event=event, data=format_data(payload)))

    async def heartbeat(self) -> None:
        """Queue a keep-alive comment."""
        if self._closed:
            raise ChannelClosed(self.session_id)
        await self._queue.put(SSEMessage(comment="heartbeat"))

    async def next(self) -> SSEMessage | None:
        """Wait for the next queued frame. None means the channel was closed."""
        return await self._queue.get()

    def close(self) -> None:
        """Close the channel. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)  # Wake the drainer


async def drain_channel(
    request: Request,
    channel: StreamChannel,
    heartbeat_interval: float = 15.0,
    poll_interval: float = 1.0,
) -> AsyncIterator[str]:
    """Yield encoded frames from a channel until it closes or the client leaves.

    Args:
        request: The incoming request (for disconnect detection)
        channel: The session's output channel
        heartbeat_interval: Seconds between heartbeat comments
        poll_interval: Seconds between disconnect checks while idle
    """

    async def heartbeat() -> None:
        """Send periodic heartbeats to keep connection alive."""
        while True:
            await asyncio.sleep(heartbeat_interval)
            try:
                await channel.heartbeat()
            except ChannelClosed:
                return

    heartbeat_task = asyncio.create_task(heartbeat())

    try:
        while True:
            if await request.is_disconnected():
                logger.debug(f"Client disconnected from stream {channel.session_id}")
                break

            try:
                message = await asyncio.wait_for(channel.next(), timeout=poll_interval)
            except TimeoutError:
                continue  # Check disconnect and try again

            if message is None:
                break  # Channel closed

            yield message.encode()

    finally:
        heartbeat_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await heartbeat_task


# =============================================================================
# Client-side parsing
# =============================================================================


@dataclass
class StreamEvent:
    """An event received from a session stream."""

    event: str
    data: str

    def json(self) -> Any:
        """Decode the data field as JSON."""
        return json.loads(self.data)


async def parse_sse(lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
    """Group SSE lines into events.

    Comment lines are skipped. Events without an explicit name get the
    default name "message", as in the EventSource API.
    """
    event_name: str | None = None
    data_lines: list[str] = []

    async for line in lines:
        if line == "":
            if data_lines:
                yield StreamEvent(event=event_name or "message", data="\n".join(data_lines))
            event_name = None
            data_lines = []
            continue

        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)

    if data_lines:
        yield StreamEvent(event=event_name or "message", data="\n".join(data_lines))
