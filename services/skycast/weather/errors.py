"""Exceptions raised by the weather pipeline."""

from __future__ import annotations


class WeatherError(Exception):
    """Base class for weather pipeline failures."""


class WeatherValidationError(WeatherError):
    """The query names neither a location nor a full coordinate pair."""


class UpstreamError(WeatherError):
    """OpenWeatherMap answered with a non-2xx status."""

    def __init__(self, endpoint: str, status_code: int, body: str) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"OpenWeatherMap {endpoint} request failed with status {status_code}: {body}"
        )


class FormattingError(WeatherError):
    """A provider timestamp could not be rendered as local time."""
