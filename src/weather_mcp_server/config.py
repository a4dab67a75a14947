"""Server configuration.

Values come from dataclass defaults, overridden by environment variables,
overridden in turn by CLI options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_UPSTREAM_URL = "https://primary-production-0ff8.up.railway.app/webhook"


@dataclass
class ServerConfig:
    """Runtime configuration for the weather server."""

    host: str = "127.0.0.1"
    port: int = 3000

    # Weather upstream
    upstream_url: str = DEFAULT_UPSTREAM_URL
    upstream_timeout: float = 10.0

    # SSE keep-alive
    heartbeat_interval: float = 15.0

    # Seconds uvicorn waits for open streams before cancelling them on shutdown
    shutdown_timeout: float = 5.0

    # Path announced to stream subscribers for posting commands
    messages_path: str = "/messages"

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build a config from WEATHER_* environment variables.

        PORT is honored as a fallback for the listen port.
        """
        config = cls()
        env = os.environ

        if "WEATHER_HOST" in env:
            config.host = env["WEATHER_HOST"]

        port = env.get("WEATHER_PORT") or env.get("PORT")
        if port:
            config.port = int(port)

        if env.get("WEATHER_UPSTREAM_URL"):
            config.upstream_url = env["WEATHER_UPSTREAM_URL"]

        if env.get("WEATHER_UPSTREAM_TIMEOUT"):
            config.upstream_timeout = float(env["WEATHER_UPSTREAM_TIMEOUT"])

        if env.get("WEATHER_HEARTBEAT_INTERVAL"):
            config.heartbeat_interval = float(env["WEATHER_HEARTBEAT_INTERVAL"])

        if env.get("WEATHER_SHUTDOWN_TIMEOUT"):
            config.shutdown_timeout = float(env["WEATHER_SHUTDOWN_TIMEOUT"])

        return config
