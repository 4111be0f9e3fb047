import pytest

from src.courier_routing.models.domain import Location, TravelTimeEntry
from src.courier_routing.services.routing.travel_time import (
    TravelTimeFallbacks,
    TravelTimeOracle,
    TravelTimeTier,
)


def _location(lid: str, lat: float | None = None, lon: float | None = None, depot: bool = False) -> Location:
    return Location(location_id=lid, name=f"Location {lid}", latitude=lat, longitude=lon, is_depot=depot)


def _entries(table: dict[tuple[str, str], float]) -> list[TravelTimeEntry]:
    return [TravelTimeEntry(from_location_id=a, to_location_id=b, minutes=m) for (a, b), m in table.items()]


LOCATIONS = [
    _location("D", 40.7128, -74.0060, depot=True),
    _location("A", 40.7282, -73.9942),
    _location("B", 40.7484, -73.9857),
    _location("NEAR", 40.7130, -74.0060),
    _location("FAR", 41.7128, -74.0060),
    _location("NOWHERE"),
]


def test_same_location_is_zero_without_table_entry():
    oracle = TravelTimeOracle(LOCATIONS, [])

    lookup = oracle.lookup("A", "A")

    assert lookup.minutes == 0
    assert lookup.tier is TravelTimeTier.SAME_LOCATION


def test_direct_entry_wins_over_reverse_entry():
    oracle = TravelTimeOracle(LOCATIONS, _entries({("D", "A"): 10, ("A", "D"): 25}))

    assert oracle.lookup("D", "A").tier is TravelTimeTier.DIRECT
    assert oracle.duration("D", "A") == 10
    assert oracle.duration("A", "D") == 25


def test_missing_direct_entry_uses_reverse_entry():
    oracle = TravelTimeOracle(LOCATIONS, _entries({("A", "D"): 12}))

    lookup = oracle.lookup("D", "A")

    assert lookup.minutes == 12
    assert lookup.tier is TravelTimeTier.REVERSE


def test_geometric_estimate_scales_planar_distance():
    locations = [_location("P", 0.0, 0.0), _location("Q", 0.03, 0.04)]
    oracle = TravelTimeOracle(locations, [], TravelTimeFallbacks(minutes_per_degree=200.0))

    lookup = oracle.lookup("P", "Q")

    assert lookup.tier is TravelTimeTier.GEOMETRIC
    assert lookup.minutes == pytest.approx(10.0)


def test_geometric_estimate_is_clamped_to_bounds():
    oracle = TravelTimeOracle(LOCATIONS, [], TravelTimeFallbacks(minutes_per_degree=300.0, min_minutes=5, max_minutes=30))

    assert oracle.duration("D", "NEAR") == 5
    assert oracle.duration("D", "FAR") == 30
    assert oracle.lookup("D", "FAR").tier is TravelTimeTier.GEOMETRIC


def test_missing_coordinates_use_default():
    oracle = TravelTimeOracle(LOCATIONS, [], TravelTimeFallbacks(default_minutes=15))

    assert oracle.lookup("D", "NOWHERE").tier is TravelTimeTier.DEFAULT
    assert oracle.duration("D", "NOWHERE") == 15
    assert oracle.duration("UNKNOWN", "A") == 15


def test_duplicate_entries_are_rejected():
    entries = _entries({("D", "A"): 10}) + _entries({("D", "A"): 11})

    with pytest.raises(ValueError, match="Duplicate travel time entry"):
        TravelTimeOracle(LOCATIONS, entries)


def test_tier_usage_counts_each_pair_once():
    oracle = TravelTimeOracle(LOCATIONS, _entries({("D", "A"): 10, ("B", "D"): 7}))

    for _ in range(3):
        oracle.duration("D", "A")
        oracle.duration("D", "B")
    oracle.duration("D", "NOWHERE")

    usage = oracle.tier_usage()
    assert usage["direct"] == 1
    assert usage["reverse"] == 1
    assert usage["default"] == 1
    assert usage["geometric"] == 0
    assert {(a, b) for a, b, _ in oracle.fallback_pairs()} == {("D", "B"), ("D", "NOWHERE")}
