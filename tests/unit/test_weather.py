"""Unit tests for the weather provider.

The upstream is replaced with httpx.MockTransport.
"""

from __future__ import annotations

import httpx
import pytest

from weather_mcp_server.errors import InvalidArgument, UpstreamError
from weather_mcp_server.weather import WeatherProvider

BASE_URL = "http://upstream.test/webhook"


def make_provider(handler) -> tuple[WeatherProvider, list[httpx.Request]]:
    """Provider whose HTTP client routes every request to handler."""
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return WeatherProvider(base_url=BASE_URL, client=client), seen


class TestFetch:
    """Tests for WeatherProvider.fetch."""

    @pytest.mark.asyncio
    async def test_returns_response_field(self) -> None:
        provider, seen = make_provider(
            lambda r: httpx.Response(200, json={"response": "Tokyo: clear, 18C"})
        )

        result = await provider.fetch("Tokyo")

        assert result == "Tokyo: clear, 18C"
        assert len(seen) == 1
        assert seen[0].url.path == "/webhook/weather"
        assert seen[0].url.params["city"] == "Tokyo"

    @pytest.mark.asyncio
    async def test_city_is_url_encoded(self) -> None:
        provider, seen = make_provider(lambda r: httpx.Response(200, json={"response": "ok"}))

        await provider.fetch("New York")

        assert seen[0].url.params["city"] == "New York"
        assert b"New+York" in seen[0].url.raw_path or b"New%20York" in seen[0].url.raw_path

    @pytest.mark.asyncio
    async def test_empty_city_makes_no_request(self) -> None:
        provider, seen = make_provider(lambda r: httpx.Response(200, json={"response": "x"}))

        with pytest.raises(InvalidArgument):
            await provider.fetch("")
        with pytest.raises(InvalidArgument):
            await provider.fetch("   ")

        assert seen == []

    @pytest.mark.asyncio
    async def test_non_success_status(self) -> None:
        provider, _ = make_provider(lambda r: httpx.Response(503, text="unavailable"))

        with pytest.raises(UpstreamError) as exc_info:
            await provider.fetch("Nowhere")

        error = exc_info.value
        assert error.upstream_status == 503
        assert "API request failed with status 503" in str(error)
        assert error.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider, _ = make_provider(fail)

        with pytest.raises(UpstreamError) as exc_info:
            await provider.fetch("Tokyo")

        assert exc_info.value.upstream_status is None
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        provider, _ = make_provider(lambda r: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(UpstreamError, match="malformed"):
            await provider.fetch("Tokyo")

    @pytest.mark.asyncio
    async def test_single_attempt(self) -> None:
        provider, seen = make_provider(lambda r: httpx.Response(500))

        with pytest.raises(UpstreamError):
            await provider.fetch("Tokyo")

        assert len(seen) == 1


class TestLifecycle:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"response": "x"}))
        )
        provider = WeatherProvider(base_url=BASE_URL, client=client)

        await provider.aclose()

        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_aclose_closes_own_client(self) -> None:
        provider = WeatherProvider(base_url=BASE_URL)
        client = provider._ensure_client()

        await provider.aclose()

        assert client.is_closed

    def test_base_url_trailing_slash(self) -> None:
        assert WeatherProvider(base_url=f"{BASE_URL}/").base_url == BASE_URL
