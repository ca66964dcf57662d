"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def closed_tour_km(origin: tuple[float, float], points: Sequence[tuple[float, float]]) -> float:
    """Length of origin -> points in order -> origin, in straight-line kilometres."""

    if not points:
        return 0.0
    total = 0.0
    prev = origin
    for point in points:
        total += haversine_km(prev[0], prev[1], point[0], point[1])
        prev = point
    total += haversine_km(prev[0], prev[1], origin[0], origin[1])
    return total
