"""
Great-circle distances (Haversine) on a spherical Earth.

Community coordinates arrive either from the backend (precise, per
neighborhood) or from the city lookup table (approximate). At both scales a
spherical model with R = 6371 km is what the map needs: the result is shown
with one decimal and only used to rank candidates.

No range validation happens here. Latitudes outside [-90, 90] or longitudes
outside [-180, 180] still produce a number; catalog validation is where bad
coordinates are reported.
"""

from __future__ import annotations

import math

import numpy as np

# Mean Earth radius in kilometers.
EARTH_RADIUS_KM = 6371.0
# Largest possible great-circle distance (half the circumference).
MAX_DISTANCE_KM = math.pi * EARTH_RADIUS_KM


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometers between two lat/lon points in degrees.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push `a` a hair above 1 for antipodal points; clamp before sqrt(1 - a).
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_km_array(
    lat: float,
    lon: float,
    lats: np.ndarray,
    lons: np.ndarray,
) -> np.ndarray:
    """
    Vectorized distances from one point to many. Output has the shape of `lats`.
    """
    lats_rad = np.deg2rad(np.asarray(lats, dtype=float))
    lons_rad = np.deg2rad(np.asarray(lons, dtype=float))
    lat_rad = math.radians(float(lat))
    lon_rad = math.radians(float(lon))

    d_lat = lats_rad - lat_rad
    d_lon = lons_rad - lon_rad
    a = np.sin(d_lat / 2) ** 2 + math.cos(lat_rad) * np.cos(lats_rad) * np.sin(d_lon / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
