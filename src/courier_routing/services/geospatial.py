"""Geospatial helper functions."""

from __future__ import annotations

from shapely.geometry import Point


def planar_distance_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Straight-line distance between two coordinates, measured in degrees.

    Treats latitude/longitude as a flat plane. Good enough inside a single
    delivery area, where it only feeds a clamped travel-time estimate.
    """

    return Point(lon1, lat1).distance(Point(lon2, lat2))
