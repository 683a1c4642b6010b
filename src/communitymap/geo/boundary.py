"""
Decorative neighborhood boundary around the nearest community.

The backend stores no administrative boundaries, so the map draws a circle of
fixed radius around the highlighted community instead. The ring is generated
directly in degrees: the latitude offset is the radius divided by the length
of one degree, and the longitude offset is additionally divided by
cos(center latitude) because meridians converge toward the poles.

These polygons are for display only, not for any overlay math.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from communitymap.geo.crs import KM_PER_DEGREE

DEFAULT_BOUNDARY_RADIUS_KM = 2.0
DEFAULT_BOUNDARY_POINTS = 64


def boundary_ring(
    *,
    center_lat: float,
    center_lon: float,
    radius_km: float = DEFAULT_BOUNDARY_RADIUS_KM,
    num_points: int = DEFAULT_BOUNDARY_POINTS,
) -> list[list[float]]:
    """
    Approximate a circle as a closed ring of `num_points + 1` GeoJSON `[lon, lat]` pairs.
    The first coordinate is repeated at the end.
    """
    if radius_km <= 0:
        raise ValueError("radius_km must be > 0")
    if num_points < 3:
        raise ValueError("num_points must be >= 3")

    angles = np.linspace(0.0, 2.0 * math.pi, num_points, endpoint=False)
    d_lat = radius_km * np.sin(angles) / KM_PER_DEGREE
    # At the poles cos() reaches 0; the ring degenerates but stays finite via the guard.
    cos_lat = max(abs(math.cos(math.radians(center_lat))), 1e-12)
    d_lon = radius_km * np.cos(angles) / (KM_PER_DEGREE * cos_lat)

    coords = [[float(center_lon + dx), float(center_lat + dy)] for dx, dy in zip(d_lon, d_lat)]
    coords.append(list(coords[0]))
    return coords


def boundary_feature(
    *,
    center_lat: float,
    center_lon: float,
    name: str | None,
    radius_km: float = DEFAULT_BOUNDARY_RADIUS_KM,
    num_points: int = DEFAULT_BOUNDARY_POINTS,
) -> dict[str, Any]:
    ring = boundary_ring(
        center_lat=center_lat,
        center_lon=center_lon,
        radius_km=radius_km,
        num_points=num_points,
    )
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [ring]},
        "properties": {"name": name, "radius_km": float(radius_km), "kind": "boundary"},
    }
