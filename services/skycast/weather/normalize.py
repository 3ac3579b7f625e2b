"""
Normalization of OpenWeatherMap payloads into WeatherSnapshot.

Inputs are the raw JSON dicts from /weather (current conditions) and
/forecast (5 days of 3-hour samples). All clock strings are rendered in the
location's own time using the forecast's ``city.timezone`` offset (seconds
east of UTC), never the server's local zone.

Hourly:  samples with dt <= now + 24h, then the first 8 of those.
Daily:   samples grouped by weekday label in first-seen order, first 7 groups.
         high/low are a rolling max/min. Humidity is a running pairwise
         average starting from 0: h = (h + sample) / 2. This is not a mean;
         later samples weigh more and the first is halved. Consumers depend
         on the exact numbers, so keep it.

Integer fields use half-up rounding (2.5 -> 3, -2.5 -> -2), not Python's
round-half-even.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from services.skycast.weather.errors import FormattingError
from services.skycast.weather.models import (
    DailySummary,
    HourlySummary,
    WeatherCondition,
    WeatherSnapshot,
)

logger = logging.getLogger(__name__)

# OpenWeatherMap "main" group -> app condition. Anything else is Sunny;
# unknown groups (Tornado, Squall, Dust, Smoke, ...) are masked, not rejected.
CONDITION_MAP: dict[str, WeatherCondition] = {
    "Clear": WeatherCondition.SUNNY,
    "Clouds": WeatherCondition.CLOUDY,
    "Rain": WeatherCondition.RAINY,
    "Drizzle": WeatherCondition.RAINY,
    "Snow": WeatherCondition.SNOWY,
    "Thunderstorm": WeatherCondition.THUNDERSTORM,
    "Mist": WeatherCondition.FOG,
    "Fog": WeatherCondition.FOG,
    "Haze": WeatherCondition.HAZE,
}
DEFAULT_CONDITION = WeatherCondition.SUNNY

HOURLY_WINDOW_SECONDS = 24 * 60 * 60
HOURLY_MAX_ENTRIES = 8  # 24h of 3-hour samples
DAILY_MAX_ENTRIES = 7

FALLBACK_LOCATION_NAME = "Current Location"
NOT_AVAILABLE = "N/A"

_MS_TO_KMH = 3.6
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def ms_to_kmh(speed_ms: float) -> int:
    return round_half_up(speed_ms * _MS_TO_KMH)


def map_condition(main: str | None) -> WeatherCondition:
    """Map an OpenWeatherMap condition group to the app enum, defaulting to Sunny."""
    condition = CONDITION_MAP.get(main or "")
    if condition is None:
        logger.debug("Unmapped weather condition %r, defaulting to %s", main, DEFAULT_CONDITION.value)
        return DEFAULT_CONDITION
    return condition


def _primary_condition(payload: dict[str, Any]) -> WeatherCondition:
    weather_list = payload.get("weather") or [{}]
    return map_condition(weather_list[0].get("main"))


# ---------------------------------------------------------------------------
# Time rendering
# ---------------------------------------------------------------------------

def _to_local(timestamp: int | float, tz_offset: int) -> datetime:
    try:
        tz = timezone(timedelta(seconds=tz_offset))
        return datetime.fromtimestamp(timestamp, tz=tz)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise FormattingError(
            f"Cannot render timestamp {timestamp!r} with offset {tz_offset!r}: {exc}"
        ) from exc


def format_clock(timestamp: int | float, tz_offset: int) -> str:
    """'6:30 AM' style local time."""
    local = _to_local(timestamp, tz_offset)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_hour(timestamp: int | float, tz_offset: int) -> str:
    """'3 PM' style local hour."""
    local = _to_local(timestamp, tz_offset)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour} {suffix}"


def format_weekday(timestamp: int | float, tz_offset: int) -> str:
    """'Tue' style local weekday."""
    return _WEEKDAYS[_to_local(timestamp, tz_offset).weekday()]


def safe_format(
    formatter: Callable[[Any, Any], str],
    timestamp: Any,
    tz_offset: Any,
) -> str:
    """Run a formatter, degrading to 'N/A' instead of failing the request."""
    try:
        return formatter(timestamp, tz_offset)
    except FormattingError as exc:
        logger.warning("Error formatting time: %s", exc)
        return NOT_AVAILABLE


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def build_hourly(
    samples: list[dict[str, Any]],
    tz_offset: int,
    now: float | None = None,
) -> list[HourlySummary]:
    """
    Summaries for the next 24 hours.

    Filters on dt <= now + 24h first, then caps the filtered list at 8 entries.
    Both steps apply; with a 3-hour feed the cap usually ends the list a little
    short of the 24h boundary.
    """
    now = time.time() if now is None else now
    cutoff = now + HOURLY_WINDOW_SECONDS

    # Samples without a numeric dt cannot be placed in the window.
    in_window = [
        s for s in samples
        if isinstance(s.get("dt"), (int, float)) and s["dt"] <= cutoff
    ]
    return [
        HourlySummary(
            time=safe_format(format_hour, sample["dt"], tz_offset),
            condition=_primary_condition(sample),
            temperature=round_half_up(sample["main"]["temp"]),
            wind_speed=ms_to_kmh(sample["wind"]["speed"]),
            humidity=round_half_up(sample["main"]["humidity"]),
        )
        for sample in in_window[:HOURLY_MAX_ENTRIES]
    ]


@dataclass
class _DayAccumulator:
    day: str
    condition: WeatherCondition
    high: float = -math.inf
    low: float = math.inf
    humidity: float = 0.0

    def add(self, sample: dict[str, Any]) -> None:
        main = sample["main"]
        self.high = max(self.high, main["temp_max"])
        self.low = min(self.low, main["temp_min"])
        self.humidity = (self.humidity + main["humidity"]) / 2

    def summary(self) -> DailySummary:
        return DailySummary(
            day=self.day,
            condition=self.condition,
            temp_high=round_half_up(self.high),
            temp_low=round_half_up(self.low),
            humidity=round_half_up(self.humidity),
        )


def build_daily(samples: list[dict[str, Any]], tz_offset: int) -> list[DailySummary]:
    """
    One summary per local weekday, in first-seen order, at most 7.

    The day's condition is its first sample's condition, not the most common.
    Samples whose timestamp cannot be placed on a day are skipped.
    """
    days: dict[str, _DayAccumulator] = {}
    for sample in samples:
        try:
            label = format_weekday(sample["dt"], tz_offset)
        except FormattingError as exc:
            logger.warning("Skipping forecast sample without a usable day: %s", exc)
            continue

        acc = days.get(label)
        if acc is None:
            acc = days[label] = _DayAccumulator(day=label, condition=_primary_condition(sample))
        acc.add(sample)

    return [acc.summary() for acc in list(days.values())[:DAILY_MAX_ENTRIES]]


def build_snapshot(
    current: dict[str, Any],
    forecast: dict[str, Any],
    now: float | None = None,
) -> WeatherSnapshot:
    """Assemble the full snapshot from /weather and /forecast payloads."""
    # A missing offset renders clock fields as "N/A"; days fall back to UTC.
    tz_offset = (forecast.get("city") or {}).get("timezone")
    day_offset = tz_offset if tz_offset is not None else 0
    if tz_offset is None:
        logger.warning("Forecast has no city.timezone; grouping days in UTC")
    samples = forecast.get("list") or []
    main = current["main"]
    sys_block = current.get("sys") or {}

    return WeatherSnapshot(
        location=current.get("name") or FALLBACK_LOCATION_NAME,
        condition=_primary_condition(current),
        temperature=round_half_up(main["temp"]),
        feels_like=round_half_up(main["feels_like"]),
        humidity=round_half_up(main["humidity"]),
        wind_speed=ms_to_kmh(current["wind"]["speed"]),
        sunrise=safe_format(format_clock, sys_block.get("sunrise"), tz_offset),
        sunset=safe_format(format_clock, sys_block.get("sunset"), tz_offset),
        current_time=safe_format(format_clock, current.get("dt"), tz_offset),
        forecast=build_daily(samples, day_offset),
        hourly=build_hourly(samples, tz_offset, now=now),
    )
