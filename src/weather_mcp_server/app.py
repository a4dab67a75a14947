"""Weather MCP Server Application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check
- /api/weather - Direct weather lookup
- /sse, /subscribe - Session event streams
- /messages - Command submission for an open stream
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from .capabilities import CapabilityRouter, build_default_router
from .config import ServerConfig
from .dispatch import CommandDispatcher
from .registry import SessionRegistry
from .routes import health_routes, message_routes, stream_routes, weather_routes
from .weather import WeatherProvider

logger = logging.getLogger(__name__)


def create_app(
    config: ServerConfig | None = None,
    *,
    provider: WeatherProvider | None = None,
    router: CapabilityRouter | None = None,
) -> Starlette:
    """Create the weather server application.

    Args:
        config: Server configuration, read from the environment if omitted
        provider: Weather provider, built from config if omitted
        router: Capability router, wired to the provider if omitted

    Returns:
        Configured Starlette application
    """
    config = config or ServerConfig.from_env()
    provider = provider or WeatherProvider(
        base_url=config.upstream_url,
        timeout=config.upstream_timeout,
    )
    router = router or build_default_router(provider)
    registry = SessionRegistry()
    dispatcher = CommandDispatcher(registry, router, messages_path=config.messages_path)

    # Combine all routes
    routes: list[Route] = []
    routes.extend(health_routes)
    routes.extend(weather_routes)
    routes.extend(stream_routes)
    routes.extend(message_routes)

    # CORS for the browser client
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        ),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(f"Weather upstream: {config.upstream_url}")
        try:
            yield
        finally:
            for info in registry.list_sessions():
                registry.remove(info["connectionId"])
            await provider.aclose()

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.config = config
    app.state.provider = provider
    app.state.router = router
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.started_at = time.monotonic()
    return app
