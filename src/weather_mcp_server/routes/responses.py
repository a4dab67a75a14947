"""Shared response helpers for route handlers."""

from starlette.responses import JSONResponse

from ..errors import WeatherServerError


def error_response(error: WeatherServerError) -> JSONResponse:
    """Render a WeatherServerError as a JSON error body."""
    return JSONResponse(error.to_dict(), status_code=error.status_code)
