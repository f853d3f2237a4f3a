"""
Geo Service
===========

Great-circle distance between two coordinates, used by the assignment
engine to measure how far a provider is from a request's job site.

Uses the haversine formula with a spherical Earth of radius 6371 km.
Accurate enough for service radius checks (error < 0.5% for distances
under 100 km).
"""

from __future__ import annotations

import math

# Earth's mean radius in kilometres
EARTH_RADIUS_KM: float = 6371.0


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points using the
    haversine formula.

    No validation is performed: a NaN coordinate yields NaN. Callers
    must exclude missing coordinates before calling.

    Args:
        lat1: Latitude of point 1 in decimal degrees.
        lon1: Longitude of point 1 in decimal degrees.
        lat2: Latitude of point 2 in decimal degrees.
        lon2: Longitude of point 2 in decimal degrees.

    Returns:
        Distance in kilometres.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c
