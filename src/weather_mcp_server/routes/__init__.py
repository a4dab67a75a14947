"""HTTP routes."""

from .health import health_routes
from .messages import message_routes
from .stream import stream_routes
from .weather import weather_routes

__all__ = [
    "health_routes",
    "message_routes",
    "stream_routes",
    "weather_routes",
]
