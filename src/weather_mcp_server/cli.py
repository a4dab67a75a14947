"""Weather MCP Server CLI.

Usage:
    weather-mcp-server                          # Run the HTTP server
    weather-mcp-server --port 8080              # Custom port
    weather-mcp-server --upstream-url URL       # Custom weather upstream
    weather-mcp-server --health                 # Check server health

    weather-mcp-server weather "New York"       # Direct lookup
    weather-mcp-server call "New York"          # Lookup over the SSE transport
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys

import click
import httpx

from .config import ServerConfig
from .sdk import WeatherClientError, WeatherServerClient

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group(invoke_without_command=True)
@click.option("--host", default=None, help="Host to bind to [env: WEATHER_HOST]")
@click.option("--port", type=int, default=None, help="Port to bind to [env: WEATHER_PORT, PORT]")
@click.option("--upstream-url", default=None, help="Weather API base URL [env: WEATHER_UPSTREAM_URL]")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default="INFO", help="Logging level")
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default="http://localhost:3000", help="Server URL for health check")
@click.pass_context
def main(
    ctx: click.Context,
    host: str | None,
    port: int | None,
    upstream_url: str | None,
    reload: bool,
    log_level: str,
    health_check: bool,
    health_url: str,
) -> None:
    """Weather MCP Server - weather lookups over HTTP and SSE."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # If a subcommand is invoked, let it handle everything
    if ctx.invoked_subcommand is not None:
        return

    if health_check:
        _do_health_check(health_url)
        return

    _run_http_server(host, port, upstream_url, reload)


def _do_health_check(url: str) -> None:
    """Check server health."""

    async def check() -> None:
        try:
            async with WeatherServerClient(url) as client:
                data = await client.health()
                click.echo(f"Server is healthy: {data}")
        except WeatherClientError as e:
            click.echo(f"Server returned {e.status_code}", err=True)
            sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


def _run_http_server(
    host: str | None,
    port: int | None,
    upstream_url: str | None,
    reload: bool,
) -> None:
    """Run the HTTP server."""
    import uvicorn

    # Pass overrides via environment for the app factory
    if host:
        os.environ["WEATHER_HOST"] = host
    if port:
        os.environ["WEATHER_PORT"] = str(port)
    if upstream_url:
        os.environ["WEATHER_UPSTREAM_URL"] = upstream_url

    config = ServerConfig.from_env()
    base = f"http://{config.host}:{config.port}"

    click.echo(f"Weather MCP server listening on {base}", err=True)
    click.echo(f"  SSE endpoint:      {base}/sse", err=True)
    click.echo(f"  Messages endpoint: {base}/messages?connectionId=YOUR_CONNECTION_ID", err=True)
    click.echo(f"  Weather API:       {base}/api/weather?city=New%20York", err=True)
    click.echo(f"  Health check:      {base}/health", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "weather_mcp_server.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=reload,
        timeout_graceful_shutdown=config.shutdown_timeout,
    )


# =============================================================================
# Client Commands
# =============================================================================


@main.command("weather")
@click.argument("city")
@click.option("--url", default="http://localhost:3000", help="Server URL")
def weather(city: str, url: str) -> None:
    """Look up weather via the direct endpoint."""

    async def run() -> None:
        async with WeatherServerClient(url) as client:
            click.echo(await client.weather(city))

    try:
        asyncio.run(run())
    except WeatherClientError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except httpx.ConnectError:
        click.echo(f"Cannot connect to server at {url}", err=True)
        sys.exit(1)


@main.command("call")
@click.argument("city")
@click.option("--url", default="http://localhost:3000", help="Server URL")
@click.option("--timeout", default=30.0, help="Seconds to wait for the result")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result envelope")
def call(city: str, url: str, timeout: float, as_json: bool) -> None:
    """Look up weather by calling the get-weather tool over SSE."""

    async def run() -> dict:
        async with WeatherServerClient(url) as client:
            return await asyncio.wait_for(
                client.call_tool("get-weather", {"city": city}),
                timeout=timeout,
            )

    try:
        result = asyncio.run(run())
    except WeatherClientError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (httpx.ConnectError, ConnectionError):
        click.echo(f"Cannot get a result from server at {url}", err=True)
        sys.exit(1)
    except TimeoutError:
        click.echo(f"No result within {timeout}s", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
        return

    click.echo(result.get("text", ""))
    if result.get("isError"):
        sys.exit(1)


if __name__ == "__main__":
    main()
