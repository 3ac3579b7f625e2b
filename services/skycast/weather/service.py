"""
WeatherService — OpenWeatherMap client with in-process caching.

One cache miss costs two provider calls:
  1. GET /weather   by ?q=<location> or ?lat=&lon=   (current conditions)
  2. GET /forecast  by ?lat=&lon=                    (5 days, 3-hour steps)

The forecast call uses the caller's coordinates when the query had them,
otherwise the coordinates /weather resolved the location name to.

OpenWeatherMap /weather (units=metric) returns:
  {
    "coord":   {"lat": 48.85, "lon": 2.35},
    "name":    "Paris",
    "weather": [{"id": 501, "main": "Rain", "description": "moderate rain"}],
    "main":    {"temp": 18.4, "feels_like": 18.1, "humidity": 77},
    "wind":    {"speed": 4.1},
    "sys":     {"sunrise": 1718337000, "sunset": 1718395000},
    "dt":      1718360000,
    ...
  }

/forecast returns {"city": {"timezone": 7200, ...}, "list": [<sample>, ...]}
where each sample carries dt, weather[0].main, main.{temp,temp_max,temp_min,
humidity} and wind.speed.

Failures are not retried. Any non-2xx from either endpoint raises
UpstreamError and nothing is cached.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from services.skycast.config import settings
from services.skycast.weather.cache import WeatherCache, cache_key, weather_cache
from services.skycast.weather.errors import UpstreamError, WeatherValidationError
from services.skycast.weather.models import WeatherQuery, WeatherSnapshot
from services.skycast.weather.normalize import build_snapshot

logger = logging.getLogger(__name__)

_CURRENT_ENDPOINT = "weather"
_FORECAST_ENDPOINT = "forecast"


def parse_query(raw: WeatherQuery | Mapping[str, Any]) -> WeatherQuery:
    """Validate a raw ``{location?, lat?, lon?}`` mapping into a WeatherQuery."""
    if isinstance(raw, WeatherQuery):
        return raw
    try:
        return WeatherQuery.model_validate(dict(raw))
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise WeatherValidationError(messages) from exc


class WeatherService:
    """
    OpenWeatherMap client with a TTL cache in front of it.

    Usage:
        service = WeatherService(api_key="...")
        snapshot = await service.get_weather({"location": "Paris"})
        snapshot.model_dump(by_alias=True)  # camelCase for the UI
    """

    def __init__(
        self,
        api_key: str,
        cache: WeatherCache | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            api_key:  OpenWeatherMap API key (OPENWEATHERMAP_API_KEY env var).
            cache:    WeatherCache to use. Defaults to the process-wide cache.
            base_url: Provider root, e.g. https://api.openweathermap.org/data/2.5
            timeout:  Per-request timeout in seconds; None disables timeouts.
        """
        self._api_key = api_key
        self._cache = cache if cache is not None else weather_cache
        self._base_url = (base_url or settings.openweathermap_base_url).rstrip("/")
        self._timeout = timeout

    @property
    def cache(self) -> WeatherCache:
        return self._cache

    async def get_weather(self, query: WeatherQuery | Mapping[str, Any]) -> WeatherSnapshot:
        """
        Return a normalized snapshot for the query, serving from cache when fresh.

        Raises:
            WeatherValidationError: query has neither a location nor a lat/lon
                pair (or has both). Raised before any network activity.
            UpstreamError: either provider call returned a non-2xx status.
        """
        query = parse_query(query)

        key = cache_key(query)
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
        else:
            logger.debug("No cache key for query %r; fetching live", query)

        snapshot = await self._fetch_snapshot(query)

        if key is not None:
            self._cache.put(key, snapshot)
        return snapshot

    async def _fetch_snapshot(self, query: WeatherQuery) -> WeatherSnapshot:
        if query.has_location:
            current_params: dict[str, Any] = {"q": query.location}
        else:
            current_params = {"lat": query.lat, "lon": query.lon}

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            current = await self._get_json(client, _CURRENT_ENDPOINT, current_params)

            if query.has_coordinates:
                lat, lon = query.lat, query.lon
            else:
                coord = current["coord"]
                lat, lon = coord["lat"], coord["lon"]

            forecast = await self._get_json(
                client, _FORECAST_ENDPOINT, {"lat": lat, "lon": lon}
            )

        return build_snapshot(current, forecast)

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{endpoint}"
        logger.info("OpenWeatherMap GET /%s %s", endpoint, params)
        resp = await client.get(
            url,
            params={**params, "appid": self._api_key, "units": "metric"},
        )
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "OpenWeatherMap /%s returned %d: %s",
                endpoint,
                exc.response.status_code,
                exc.response.text[:200],
            )
            raise UpstreamError(endpoint, exc.response.status_code, exc.response.text) from exc
        return resp.json()
