"""Weather lookup against the upstream webhook.

A single GET per call: no retries, no caching.
"""

from __future__ import annotations

import logging

import httpx

from .config import DEFAULT_UPSTREAM_URL
from .errors import InvalidArgument, UpstreamError

logger = logging.getLogger(__name__)


class WeatherProvider:
    """Answers "what is the weather in city C" via the upstream API.

    The upstream returns JSON of the form {"response": "<weather text>"}.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_UPSTREAM_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def fetch(self, city: str) -> str:
        """Fetch the current weather description for a city.

        Raises:
            InvalidArgument: city is empty
            UpstreamError: the upstream call did not succeed
        """
        if not city or not city.strip():
            raise InvalidArgument("City parameter is required")

        logger.info(f"Fetching weather data for {city}")
        client = self._ensure_client()

        try:
            response = await client.get(f"{self.base_url}/weather", params={"city": city})
        except httpx.HTTPError as e:
            logger.error(f"Weather request for {city} failed: {e!r}")
            raise UpstreamError(
                f"Failed to fetch weather data for {city}: {e or type(e).__name__}"
            ) from e

        if not response.is_success:
            logger.error(f"Weather upstream returned {response.status_code} for {city}")
            raise UpstreamError(
                f"Failed to fetch weather data for {city}: "
                f"API request failed with status {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
            result = data["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamError(
                f"Failed to fetch weather data for {city}: malformed upstream response"
            ) from e

        return str(result)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
