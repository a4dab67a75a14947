"""Stream subscription endpoint.

GET /sse (alias /subscribe) opens a long-lived event stream for one
session. Event order on every stream:

    connection -> endpoint -> ready -> message*

The session is registered for exactly as long as the stream is open;
the generator's finally block is the single point of cleanup.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from starlette.requests import Request
from starlette.responses import Response, StreamingResponse
from starlette.routing import Route

from ..errors import SessionConflict
from ..protocol import ConnectionProps, ErrorProps, ReadyProps, StreamEventType
from ..registry import Session
from ..transport.sse import SSE_HEADERS, SSEMessage, drain_channel, format_data
from .responses import error_response

logger = logging.getLogger(__name__)


async def _handshake(request: Request, session: Session) -> None:
    """Bind the session to the dispatcher, then flag it ready.

    On failure the session stays registered but not ready; commands are
    rejected with SessionNotReady until the client reconnects.
    """
    state = request.app.state
    try:
        await state.dispatcher.connect(session)
        state.registry.mark_ready(session.id)
        await session.channel.send(StreamEventType.READY.value, ReadyProps())
    except Exception:
        logger.exception(f"Error connecting session {session.id} to dispatcher")
        return

    logger.info(f"Session {session.id} ready")


async def session_stream(request: Request, requested_id: str | None) -> AsyncIterator[str]:
    """Generate the SSE stream for one session."""
    state = request.app.state
    registry = state.registry

    try:
        session = registry.create(requested_id)
    except SessionConflict as e:
        # Lost a race with another subscriber using the same id
        error = ErrorProps(error=e.error, details=e.details)
        yield SSEMessage(event=StreamEventType.ERROR.value, data=format_data(error)).encode()
        return

    try:
        connection = ConnectionProps(connectionId=session.id)
        yield SSEMessage(
            event=StreamEventType.CONNECTION.value, data=format_data(connection)
        ).encode()

        await _handshake(request, session)

        frames = drain_channel(
            request,
            session.channel,
            heartbeat_interval=state.config.heartbeat_interval,
        )
        async with contextlib.aclosing(frames):
            async for chunk in frames:
                yield chunk
    finally:
        logger.info(f"Client {session.id} disconnected")
        registry.remove(session.id)


async def subscribe(request: Request) -> Response:
    """Open a session stream.

    Query parameters:
        connectionId: optional client-chosen session id

    Returns 409 if connectionId belongs to a stream that is still open.
    """
    requested_id = request.query_params.get("connectionId") or None
    if requested_id is not None and requested_id in request.app.state.registry:
        logger.warning(f"Rejected subscription with live connection id {requested_id}")
        return error_response(SessionConflict(requested_id))

    logger.info(f"Setting up SSE connection for client {requested_id or '<new>'}")

    return StreamingResponse(
        session_stream(request, requested_id),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


stream_routes = [
    Route("/sse", subscribe, methods=["GET"]),
    Route("/subscribe", subscribe, methods=["GET"]),
]
