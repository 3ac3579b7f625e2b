"""
Shared test fixtures for the Skycast test suite.

Provides:
- OpenWeatherMap payload factories for /weather and /forecast
- FakeClock for TTL tests without sleeping
- mock httpx.AsyncClient builder with a call counter (client.get.call_count)
- async FastAPI test client with a mocked WeatherService on app.state
"""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("OPENWEATHERMAP_API_KEY", "test-key-123")
os.environ.setdefault("SENTRY_DSN", "")

from services.skycast.weather.cache import WeatherCache, weather_cache  # noqa: E402
from services.skycast.weather.models import (  # noqa: E402
    DailySummary,
    HourlySummary,
    WeatherCondition,
    WeatherSnapshot,
)

# 2024-06-14 00:00:00 UTC, a Friday
DAY0 = 1718323200
HOUR = 3600


# ---------------------------------------------------------------------------
# Payload factories
# ---------------------------------------------------------------------------

def make_current_response(
    name: str | None = "Paris",
    main: str = "Rain",
    temp: float = 18.4,
    feels_like: float = 17.6,
    humidity: float = 77,
    wind_speed: float = 4.1,
    lat: float = 48.8534,
    lon: float = 2.3488,
    sunrise: int | None = DAY0 + 4 * HOUR - 600,
    sunset: int | None = DAY0 + 19 * HOUR + 1800,
    dt: int | None = DAY0 + 10 * HOUR,
) -> dict[str, Any]:
    """Factory for OpenWeatherMap /weather response dicts (units=metric)."""
    payload: dict[str, Any] = {
        "coord": {"lat": lat, "lon": lon},
        "weather": [{"id": 501, "main": main, "description": main.lower()}],
        "main": {"temp": temp, "feels_like": feels_like, "humidity": humidity},
        "wind": {"speed": wind_speed},
        "sys": {"sunrise": sunrise, "sunset": sunset},
        "dt": dt,
        "cod": 200,
    }
    if name is not None:
        payload["name"] = name
    return payload


def make_forecast_sample(
    dt: int | None,
    main: str = "Clear",
    temp: float = 20.0,
    temp_max: float | None = None,
    temp_min: float | None = None,
    humidity: float = 50,
    wind_speed: float = 3.0,
) -> dict[str, Any]:
    """Factory for one 3-hour sample in the /forecast list."""
    return {
        "dt": dt,
        "weather": [{"main": main}],
        "main": {
            "temp": temp,
            "temp_max": temp if temp_max is None else temp_max,
            "temp_min": temp if temp_min is None else temp_min,
            "humidity": humidity,
        },
        "wind": {"speed": wind_speed},
    }


def make_forecast_response(
    start: int = DAY0,
    count: int = 40,
    timezone_offset: int = 0,
    **sample_overrides: Any,
) -> dict[str, Any]:
    """Factory for /forecast: ``count`` samples 3 hours apart from ``start``."""
    return {
        "city": {"name": "Paris", "timezone": timezone_offset},
        "list": [
            make_forecast_sample(start + i * 3 * HOUR, **sample_overrides)
            for i in range(count)
        ],
    }


def make_snapshot(**overrides: Any) -> WeatherSnapshot:
    """A fully populated snapshot for router and cache tests."""
    data: dict[str, Any] = {
        "location": "Paris",
        "condition": WeatherCondition.RAINY,
        "temperature": 18,
        "feels_like": 18,
        "humidity": 77,
        "wind_speed": 15,
        "sunrise": "3:50 AM",
        "sunset": "7:30 PM",
        "current_time": "10:00 AM",
        "forecast": [
            DailySummary(
                day="Fri",
                condition=WeatherCondition.RAINY,
                temp_high=21,
                temp_low=12,
                humidity=70,
            )
        ],
        "hourly": [
            HourlySummary(
                time="12 PM",
                condition=WeatherCondition.CLOUDY,
                temperature=19,
                wind_speed=14,
                humidity=72,
            )
        ],
    }
    data.update(overrides)
    return WeatherSnapshot(**data)


# ---------------------------------------------------------------------------
# HTTP mocks
# ---------------------------------------------------------------------------

def make_http_response(status_code: int = 200, payload: Any = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json = MagicMock(return_value=payload)
    response.text = text
    if not 200 <= status_code < 300:
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                str(status_code), request=MagicMock(), response=response
            )
        )
    return response


def make_http_client(*responses: MagicMock) -> AsyncMock:
    """AsyncClient stand-in that answers successive .get() calls in order."""
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.get = AsyncMock(side_effect=list(responses))
    return client


class FakeClock:
    """Monotonic clock stand-in; advance() moves time forward."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(fake_clock) -> WeatherCache:
    return WeatherCache(ttl_seconds=300, clock=fake_clock)


@pytest.fixture(autouse=True)
def _reset_process_cache():
    """The module-level cache outlives tests; start each one empty."""
    weather_cache.clear()
    yield
    weather_cache.clear()


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_weather_service():
    service = MagicMock()
    service.get_weather = AsyncMock(return_value=make_snapshot())
    service.cache = WeatherCache()
    return service


@pytest.fixture
def app(mock_weather_service):
    """The FastAPI app with mocked dependencies injected on app.state."""
    from services.skycast.config import settings
    from services.skycast.main import app as _app

    _app.state.settings = settings
    _app.state.weather_service = mock_weather_service
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
