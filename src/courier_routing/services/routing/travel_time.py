"""Travel-time resolution over a sparse, directed table.

Lookups never fail. When the table has no entry for a pair the oracle falls
back, in order, to the reverse entry, a clamped geometric estimate from the
locations' coordinates, and finally a fixed default.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ...config import settings
from ...models.domain import Location, TravelTimeEntry
from ..geospatial import planar_distance_degrees

logger = logging.getLogger(__name__)


class TravelTimeTier(str, Enum):
    SAME_LOCATION = "same_location"
    DIRECT = "direct"
    REVERSE = "reverse"
    GEOMETRIC = "geometric"
    DEFAULT = "default"


# Tiers that mean the table did not hold the directed pair.
FALLBACK_TIERS = (TravelTimeTier.REVERSE, TravelTimeTier.GEOMETRIC, TravelTimeTier.DEFAULT)


@dataclass(slots=True)
class TravelTimeFallbacks:
    minutes_per_degree: float = settings.geometric_minutes_per_degree
    min_minutes: float = settings.min_travel_minutes
    max_minutes: float = settings.max_travel_minutes
    default_minutes: float = settings.default_travel_minutes


@dataclass(frozen=True, slots=True)
class TravelTimeLookup:
    minutes: float
    tier: TravelTimeTier


def index_travel_times(entries: Iterable[TravelTimeEntry]) -> dict[tuple[str, str], float]:
    table: dict[tuple[str, str], float] = {}
    for entry in entries:
        key = (entry.from_location_id, entry.to_location_id)
        if key in table:
            raise ValueError(f"Duplicate travel time entry for {key[0]} -> {key[1]}.")
        table[key] = float(entry.minutes)
    return table


class TravelTimeOracle:
    def __init__(
        self,
        locations: Iterable[Location],
        entries: Iterable[TravelTimeEntry],
        fallbacks: TravelTimeFallbacks | None = None,
    ) -> None:
        self.locations = {location.location_id: location for location in locations}
        self.table = index_travel_times(entries)
        self.fallbacks = fallbacks or TravelTimeFallbacks()
        self._cache: dict[tuple[str, str], TravelTimeLookup] = {}
        self._tier_counts: Counter[TravelTimeTier] = Counter()

    def duration(self, from_id: str, to_id: str) -> float:
        return self.lookup(from_id, to_id).minutes

    def lookup(self, from_id: str, to_id: str) -> TravelTimeLookup:
        key = (from_id, to_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = self._resolve(from_id, to_id)
        self._cache[key] = result
        self._tier_counts[result.tier] += 1
        if result.tier in FALLBACK_TIERS:
            logger.debug(f"Travel time {from_id} -> {to_id} resolved via {result.tier.value}: {result.minutes:.1f} min")
        return result

    def _resolve(self, from_id: str, to_id: str) -> TravelTimeLookup:
        if from_id == to_id:
            return TravelTimeLookup(0.0, TravelTimeTier.SAME_LOCATION)

        direct = self.table.get((from_id, to_id))
        if direct is not None:
            return TravelTimeLookup(direct, TravelTimeTier.DIRECT)

        reverse = self.table.get((to_id, from_id))
        if reverse is not None:
            return TravelTimeLookup(reverse, TravelTimeTier.REVERSE)

        origin = self.locations.get(from_id)
        destination = self.locations.get(to_id)
        if origin is None or destination is None or not origin.has_coordinates or not destination.has_coordinates:
            return TravelTimeLookup(self.fallbacks.default_minutes, TravelTimeTier.DEFAULT)

        degrees = planar_distance_degrees(
            origin.latitude, origin.longitude, destination.latitude, destination.longitude
        )
        estimate = degrees * self.fallbacks.minutes_per_degree
        clamped = min(max(estimate, self.fallbacks.min_minutes), self.fallbacks.max_minutes)
        return TravelTimeLookup(clamped, TravelTimeTier.GEOMETRIC)

    def tier_usage(self) -> dict[str, int]:
        """Number of distinct pairs answered by each tier so far."""
        return {tier.value: self._tier_counts.get(tier, 0) for tier in TravelTimeTier}

    def fallback_pairs(self) -> list[tuple[str, str, TravelTimeTier]]:
        return [
            (from_id, to_id, lookup.tier)
            for (from_id, to_id), lookup in self._cache.items()
            if lookup.tier in FALLBACK_TIERS
        ]
