"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.applications import Starlette

from weather_mcp_server.app import create_app
from weather_mcp_server.config import ServerConfig
from weather_mcp_server.weather import WeatherProvider


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def config() -> ServerConfig:
    """Config pointing at a fake upstream."""
    return ServerConfig(upstream_url="http://upstream.test/webhook", heartbeat_interval=60.0)


@pytest.fixture
def fake_provider() -> MagicMock:
    """WeatherProvider stand-in answering "Sunny, 22C" for any city."""
    provider = MagicMock(spec=WeatherProvider)
    provider.fetch = AsyncMock(return_value="Sunny, 22C")
    provider.aclose = AsyncMock()
    return provider


@pytest.fixture
def app(config: ServerConfig, fake_provider: MagicMock) -> Starlette:
    """Application wired to the fake provider."""
    return create_app(config, provider=fake_provider)
