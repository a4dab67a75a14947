"""Direct weather endpoint.

A plain request/response alternative to the streaming transport.
"""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..errors import InvalidArgument, UpstreamError
from .responses import error_response

logger = logging.getLogger(__name__)


async def get_weather(request: Request) -> JSONResponse:
    """GET /api/weather?city=<name>"""
    city = request.query_params.get("city", "")
    if not city.strip():
        return JSONResponse({"error": "City parameter is required"}, status_code=400)

    provider = request.app.state.provider
    try:
        weather_info = await provider.fetch(city)
    except InvalidArgument as e:
        return error_response(e)
    except UpstreamError as e:
        logger.error(f"Error fetching weather: {e}")
        return error_response(e)

    return JSONResponse({"response": weather_info})


weather_routes = [
    Route("/api/weather", get_weather, methods=["GET"]),
]
