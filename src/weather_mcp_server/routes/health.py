"""Health check endpoint."""

import time

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .. import SERVER_NAME, __version__


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    state = request.app.state
    return JSONResponse(
        {
            "status": "ok",
            "uptime": round(time.monotonic() - state.started_at, 3),
            "serverName": SERVER_NAME,
            "version": __version__,
            "sessions": len(state.registry),
        }
    )


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
