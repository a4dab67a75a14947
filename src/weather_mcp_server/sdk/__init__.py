"""Client SDK for the weather server."""

from .client import WeatherClientError, WeatherServerClient

__all__ = ["WeatherClientError", "WeatherServerClient"]
