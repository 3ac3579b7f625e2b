"""
Request and response shapes for the weather pipeline.

WeatherQuery is the single call signature: a free-text location, or a
lat/lon pair. WeatherSnapshot is what the UI consumes; it serializes with
camelCase keys (feelsLike, windSpeed, tempHigh, ...) via by_alias=True.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class WeatherCondition(str, Enum):
    SUNNY = "Sunny"
    CLOUDY = "Cloudy"
    RAINY = "Rainy"
    SNOWY = "Snowy"
    THUNDERSTORM = "Thunderstorm"
    FOG = "Fog"
    HAZE = "Haze"


class WeatherQuery(BaseModel):
    """Either ``location`` or both ``lat`` and ``lon``, never both forms."""

    model_config = ConfigDict(frozen=True)

    location: str | None = None
    lat: float | None = None
    lon: float | None = None

    @property
    def has_location(self) -> bool:
        # Empty string counts as absent; whitespace-only does not.
        return bool(self.location)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @model_validator(mode="after")
    def _exactly_one_form(self) -> "WeatherQuery":
        if (self.lat is None) != (self.lon is None):
            raise ValueError("lat and lon must be provided together.")
        if self.has_location and self.has_coordinates:
            raise ValueError("Provide either location or lat/lon, not both.")
        if not self.has_location and not self.has_coordinates:
            raise ValueError("Either location or both lat and lon must be provided.")
        return self


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class HourlySummary(_CamelModel):
    time: str
    condition: WeatherCondition
    temperature: int
    wind_speed: int
    humidity: int


class DailySummary(_CamelModel):
    day: str
    condition: WeatherCondition
    temp_high: int
    temp_low: int
    humidity: int


class WeatherSnapshot(_CamelModel):
    location: str
    condition: WeatherCondition
    temperature: int
    feels_like: int
    humidity: int
    wind_speed: int
    sunrise: str
    sunset: str
    current_time: str
    forecast: list[DailySummary]
    hourly: list[HourlySummary]
