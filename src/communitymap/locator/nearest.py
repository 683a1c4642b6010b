"""
Nearest-community search.

Coordinates for a community are resolved in a fixed order:
1) its own precise latitude/longitude,
2) the city-level fallback table, keyed by city name,
3) otherwise the community cannot be placed and is left out of the ranking.

`find_nearest_community` is a linear scan with a strict `<` comparison, so
when two candidates are exactly equidistant the one that appears first in the
input wins. `nearby_communities` answers "everything within R km" with a
KD-tree over unit-sphere vectors, the same way the density joins work.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np
from scipy.spatial import cKDTree

from communitymap.geo.crs import km_to_chord, latlon_to_unit_xyz
from communitymap.geo.distance import haversine_km, haversine_km_array
from communitymap.locator.model import CityCoordinates, Community, Coordinate
from communitymap.log import get_logger


def resolve_coordinates(community: Community, city_coordinates: CityCoordinates) -> Coordinate | None:
    precise = community.precise_coordinate
    if precise is not None:
        return precise
    return city_coordinates.get(community.city)


def _resolved(
    communities: Iterable[Community],
    city_coordinates: CityCoordinates,
) -> list[tuple[Community, Coordinate]]:
    out: list[tuple[Community, Coordinate]] = []
    skipped = 0
    for community in communities:
        coords = resolve_coordinates(community, city_coordinates)
        if coords is None:
            skipped += 1
            continue
        out.append((community, coords))
    if skipped:
        get_logger().debug("Skipped %s communities without resolvable coordinates", skipped)
    return out


def find_nearest_index(
    user: Coordinate,
    communities: Sequence[Community],
    city_coordinates: CityCoordinates,
) -> tuple[int, Community] | None:
    """
    Position in `communities` of the closest placeable community, plus an
    annotated copy of it. Ids are not assumed unique, so callers that need to
    single out the winner should use the position.
    """
    best: tuple[int, Community] | None = None
    min_distance = math.inf
    skipped = 0
    for idx, community in enumerate(communities):
        coords = resolve_coordinates(community, city_coordinates)
        if coords is None:
            skipped += 1
            continue
        distance = haversine_km(user.lat, user.lon, coords.lat, coords.lon)
        if distance < min_distance:
            min_distance = distance
            best = (idx, community.annotated(coordinates=coords, distance_km=distance))
    if skipped:
        get_logger().debug("Skipped %s communities without resolvable coordinates", skipped)
    return best


def find_nearest_community(
    user: Coordinate,
    communities: Sequence[Community],
    city_coordinates: CityCoordinates,
) -> Community | None:
    """
    Return a copy of the closest community annotated with its resolved
    coordinates and `distance_from_user_km`, or None when nothing can be placed.
    """
    found = find_nearest_index(user, communities, city_coordinates)
    return found[1] if found is not None else None


def nearby_communities(
    user: Coordinate,
    communities: Sequence[Community],
    city_coordinates: CityCoordinates,
    *,
    radius_km: float,
) -> list[Community]:
    """
    All placeable communities within `radius_km` of the user, closest first.
    Equal distances keep input order.
    """
    if radius_km <= 0:
        raise ValueError("radius_km must be > 0")
    resolved = _resolved(communities, city_coordinates)
    if not resolved:
        return []

    lats = np.array([c.lat for _, c in resolved], dtype=float)
    lons = np.array([c.lon for _, c in resolved], dtype=float)
    tree = cKDTree(latlon_to_unit_xyz(lats, lons))
    user_xyz = latlon_to_unit_xyz(np.array([user.lat]), np.array([user.lon]))[0]
    idxs = np.asarray(sorted(tree.query_ball_point(user_xyz, km_to_chord(radius_km))), dtype=int)
    if idxs.size == 0:
        return []

    distances = haversine_km_array(user.lat, user.lon, lats[idxs], lons[idxs])
    # Stable sort keeps input order for ties.
    order = np.argsort(distances, kind="mergesort")
    out: list[Community] = []
    for k in order:
        community, coords = resolved[int(idxs[k])]
        out.append(community.annotated(coordinates=coords, distance_km=float(distances[k])))
    return out
