"""Waypoint plan generation around a center point."""

import math
from typing import List

from .models import Waypoint

EARTH_RADIUS_KM = 6371.0

# Unit steps walking around one hexagonal ring, as (north, east) multiples
# of the step distance.
_HEX_DIRECTIONS = (
    (math.sqrt(3) / 2, -0.5),
    (0.0, -1.0),
    (-math.sqrt(3) / 2, -0.5),
    (-math.sqrt(3) / 2, 0.5),
    (0.0, 1.0),
    (math.sqrt(3) / 2, 0.5),
)


def offset(latitude: float, longitude: float, north_km: float, east_km: float) -> Waypoint:
    """Move a coordinate by a small distance expressed in kilometres."""
    d_lat = math.degrees(north_km / EARTH_RADIUS_KM)
    d_lon = math.degrees(east_km / (EARTH_RADIUS_KM * math.cos(math.radians(latitude))))
    return Waypoint(latitude + d_lat, longitude + d_lon)


def generate_steps(latitude: float, longitude: float, step_count: int = 5, radius: float = 0.07) -> List[Waypoint]:
    """
    Generate a hexagonal spiral of waypoints around a center.

    Ring 0 is the center itself; every further ring adds six times its index
    in waypoints, so ``step_count`` rings yield ``1 + 3 * n * (n - 1)``
    waypoints. Neighbouring waypoints are ``radius`` kilometres apart.

    Args:
        latitude: Center latitude
        longitude: Center longitude
        step_count: Number of rings, including the center
        radius: Distance between neighbouring waypoints in kilometres

    Returns:
        Ordered waypoint list starting at the center

    Raises:
        ValueError: If step_count < 1 or radius <= 0
    """
    if step_count < 1:
        raise ValueError("step_count must be at least 1")
    if radius <= 0:
        raise ValueError("radius must be positive")

    steps = [Waypoint(latitude, longitude)]
    for ring in range(1, step_count):
        # Start each ring due east of the center
        north, east = 0.0, ring * radius
        for d_north, d_east in _HEX_DIRECTIONS:
            for _ in range(ring):
                north += d_north * radius
                east += d_east * radius
                steps.append(offset(latitude, longitude, north, east))
    return steps
