"""
Weather cache — in-process, keyed per location, short TTL.

Cache key format:
  location query:    "  London " -> "london"
  coordinate query:  (51.5074, -0.1278) -> "51.51:-0.13"

Coordinates are rounded to 2 decimals, so nearby points (~1 km) share an
entry. Location names are trimmed and lowercased only; "New York" and
"new york" collide, "New York" and "NYC" do not.

TTL: 300 seconds (settings.weather_cache_ttl_s).

Entries expire lazily: a stale entry is deleted when it is next read. There
is no sweeper and no size bound, so keys accumulate for the life of the
process. The store is a plain dict with no lock; it relies on a single event
loop owning it. Two concurrent misses for the same key both hit the provider.

Running more than one worker process gives each its own cache.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from services.skycast.config import settings
from services.skycast.weather.models import WeatherQuery, WeatherSnapshot

logger = logging.getLogger(__name__)

_TTL_SECONDS = 300.0


def cache_key(query: WeatherQuery) -> str | None:
    """Derive the cache key for a query, or None if it has no usable key.

    A None key means the caller skips the cache entirely.
    """
    if query.has_location:
        key = query.location.strip().lower()
        return key or None
    if query.has_coordinates:
        return f"{query.lat:.2f}:{query.lon:.2f}"
    return None


@dataclass
class CacheEntry:
    value: WeatherSnapshot
    expiry: float


class WeatherCache:
    """
    TTL cache of normalized snapshots.

    Usage:
        cache = WeatherCache()
        snapshot = cache.get(key)
        if snapshot is None:
            snapshot = await build_snapshot(...)
            cache.put(key, snapshot)
    """

    def __init__(
        self,
        ttl_seconds: float = _TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> WeatherSnapshot | None:
        """Return the stored snapshot if still fresh, else drop it and return None."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Weather cache miss: %s", key)
            return None
        if self._clock() >= entry.expiry:
            del self._entries[key]
            logger.debug("Weather cache expired: %s", key)
            return None
        logger.debug("Weather cache hit: %s", key)
        return entry.value

    def put(self, key: str, value: WeatherSnapshot) -> None:
        """Store a snapshot, replacing any previous entry for the key."""
        expiry = self._clock() + self.ttl_seconds
        self._entries[key] = CacheEntry(value=value, expiry=expiry)
        logger.debug("Weather cached: key=%s ttl=%.0fs", key, self.ttl_seconds)

    def invalidate(self, key: str) -> None:
        """Force-evict one entry (useful in tests)."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


# Process-wide cache shared by every WeatherService built without its own.
weather_cache = WeatherCache(ttl_seconds=settings.weather_cache_ttl_s)
