"""
Weather package.

OpenWeatherMap current + forecast data, normalized into WeatherSnapshot and
served through a 5-minute in-process cache keyed by location.
"""

from services.skycast.weather.cache import WeatherCache, cache_key, weather_cache
from services.skycast.weather.errors import (
    FormattingError,
    UpstreamError,
    WeatherError,
    WeatherValidationError,
)
from services.skycast.weather.models import WeatherCondition, WeatherQuery, WeatherSnapshot
from services.skycast.weather.service import WeatherService

__all__ = [
    "WeatherService",
    "WeatherCache",
    "weather_cache",
    "cache_key",
    "WeatherQuery",
    "WeatherSnapshot",
    "WeatherCondition",
    "WeatherError",
    "WeatherValidationError",
    "UpstreamError",
    "FormattingError",
]
