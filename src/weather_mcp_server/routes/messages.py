"""Command submission endpoint.

POST /messages?connectionId=<id> accepts a command for an open stream,
acknowledges it immediately and delivers the result on the stream once the
response has been sent.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..errors import InvalidArgument, WeatherServerError
from ..protocol import CommandMessage
from .responses import error_response

logger = logging.getLogger(__name__)


async def _parse_command(request: Request) -> CommandMessage:
    """Parse the request body into a command.

    Raises:
        InvalidArgument: body is not valid JSON or not a valid command
    """
    body = await request.body()
    try:
        data = json.loads(body.decode("utf-8")) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidArgument(f"Parse error: {e}") from e

    if not isinstance(data, dict):
        raise InvalidArgument("Command body must be a JSON object")

    try:
        return CommandMessage.model_validate(data)
    except ValidationError as e:
        raise InvalidArgument(f"Invalid command: {e.errors()[0]['msg']}") from e


async def post_message(request: Request) -> JSONResponse:
    """Accept a command addressed to a session."""
    dispatcher = request.app.state.dispatcher
    session_id = request.query_params.get("connectionId")

    try:
        # Reject unknown sessions before reading the body
        dispatcher.resolve(session_id)
        command = await _parse_command(request)
        # The stream may have closed while the body was read; dispatch re-checks
        ack = dispatcher.dispatch(session_id, command)
    except WeatherServerError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error processing message: {e}")
        return JSONResponse(
            {"error": "Failed to process message", "details": str(e)},
            status_code=500,
        )

    # The result goes via SSE, after this response is sent
    return JSONResponse(
        ack.model_dump(),
        background=BackgroundTask(dispatcher.deliver, session_id, command),
    )


message_routes = [
    Route("/messages", post_message, methods=["POST"]),
]
