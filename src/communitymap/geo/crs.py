"""
Coordinate helpers for radius queries on the sphere.

A KD-tree works in Euclidean space, so lat/lon points are mapped onto the
unit sphere (x, y, z). The straight-line (chord) distance between two unit
vectors is a monotonic function of the great-circle distance, which lets a
"within R km" query be answered exactly by a Euclidean radius query with the
matching chord length.
"""

from __future__ import annotations

import math

import numpy as np

from communitymap.geo.distance import EARTH_RADIUS_KM

# Kilometers per degree of latitude (also per degree of longitude at the equator).
KM_PER_DEGREE = 111.32


def latlon_to_unit_xyz(lat_deg: np.ndarray, lon_deg: np.ndarray) -> np.ndarray:
    lat_rad = np.deg2rad(np.asarray(lat_deg, dtype=float))
    lon_rad = np.deg2rad(np.asarray(lon_deg, dtype=float))
    cos_lat = np.cos(lat_rad)
    # (N, 3) array, the layout cKDTree expects.
    return np.column_stack([cos_lat * np.cos(lon_rad), cos_lat * np.sin(lon_rad), np.sin(lat_rad)])


def km_to_chord(distance_km: float) -> float:
    # Distances beyond half the circumference all map to the diameter.
    angle = min(float(distance_km) / EARTH_RADIUS_KM, math.pi)
    return 2.0 * math.sin(angle / 2.0)
