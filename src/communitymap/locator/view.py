"""
Map view derivation.

`compute_map_view` turns (user location, communities, city table) into
everything a renderer needs: styled markers, the highlighted nearest
community, the boundary overlay and the initial viewport. It is a pure
function; `LocatorSession` in `communitymap.locator.session` decides when to
call it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from communitymap.geo.boundary import DEFAULT_BOUNDARY_POINTS, DEFAULT_BOUNDARY_RADIUS_KM, boundary_feature
from communitymap.locator.model import CityCoordinates, Community, Coordinate
from communitymap.locator.nearest import find_nearest_index, resolve_coordinates

# Geographic center of Brazil, used when there is no nearest community.
DEFAULT_CENTER = Coordinate(lat=-14.2350, lon=-51.9253)
DEFAULT_ZOOM = 4
# Neighborhood-level zoom around the nearest community.
NEAREST_ZOOM = 12

NEAREST_COLOR = "#3b82f6"
NEAREST_BORDER_COLOR = "#1e40af"
USER_COLOR = "#ef4444"
HDI_HIGH_COLOR = "#22c55e"
HDI_MID_COLOR = "#eab308"
HDI_LOW_COLOR = "#ef4444"

NEAREST_SIZE = 20
BUSY_SIZE = 16
DEFAULT_SIZE = 12
USER_SIZE = 14
# Communities with at least this many projects get a larger marker.
BUSY_PROJECT_COUNT = 3


@dataclass(frozen=True)
class Viewport:
    center: Coordinate
    zoom: int


@dataclass(frozen=True)
class Marker:
    community_id: str | None
    coordinate: Coordinate
    color: str
    size: int
    border_color: str = "#ffffff"
    is_nearest: bool = False
    popup: dict[str, Any] = field(default_factory=dict)

    def to_feature(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": self.coordinate.as_lonlat()},
            "properties": {
                "kind": "community" if self.community_id is not None else "user",
                "id": self.community_id,
                "color": self.color,
                "size": self.size,
                "border_color": self.border_color,
                "is_nearest": self.is_nearest,
                "popup": self.popup,
            },
        }


@dataclass(frozen=True)
class MapView:
    markers: list[Marker]
    user_marker: Marker | None
    nearest: Community | None
    boundary: dict[str, Any] | None
    viewport: Viewport
    total_communities: int

    @property
    def subtitle(self) -> str:
        if self.nearest is not None and self.nearest.distance_from_user_km is not None:
            return (
                f"Centered on nearest community ({self.nearest.distance_from_user_km:.1f} km)"
                f" - {self.total_communities} locations"
            )
        return f"Communities where the NGO works - {self.total_communities} locations"

    def to_geojson(self) -> dict[str, Any]:
        features = [m.to_feature() for m in self.markers]
        if self.user_marker is not None:
            features.append(self.user_marker.to_feature())
        if self.boundary is not None:
            features.append(self.boundary)
        return {"type": "FeatureCollection", "features": features}


def hdi_color(hdi: float | None) -> str:
    value = float(hdi or 0.0)
    if value >= 0.6:
        return HDI_HIGH_COLOR
    if value >= 0.4:
        return HDI_MID_COLOR
    return HDI_LOW_COLOR


def marker_size(community: Community, *, is_nearest: bool) -> int:
    if is_nearest:
        return NEAREST_SIZE
    return BUSY_SIZE if community.project_count >= BUSY_PROJECT_COUNT else DEFAULT_SIZE


def popup_content(community: Community, *, distance_km: float | None = None) -> dict[str, Any]:
    """Popup rows for one marker; only the nearest community passes `distance_km`."""
    is_nearest = distance_km is not None
    rows = []
    if is_nearest and distance_km:
        rows.append({"label": "Distance", "value": f"{distance_km:.1f} km"})
    # An HDI of 0 means "not calculated yet".
    rows.append({"label": "HDI", "value": f"{community.hdi:.3f}" if community.hdi else "N/A"})
    rows.append({"label": "People", "value": str(int(community.beneficiaries or 0))})
    rows.append({"label": "Projects", "value": str(int(community.project_count or 0))})
    return {
        "title": community.neighborhood,
        "subtitle": f"{community.city}, {community.state}",
        "nearest_badge": "Nearest community" if is_nearest else None,
        "rows": rows,
    }


def _community_marker(community: Community, coords: Coordinate, *, nearest: Community | None) -> Marker:
    is_nearest = nearest is not None
    return Marker(
        community_id=community.id,
        coordinate=coords,
        color=NEAREST_COLOR if is_nearest else hdi_color(community.hdi),
        size=marker_size(community, is_nearest=is_nearest),
        border_color=NEAREST_BORDER_COLOR if is_nearest else "#ffffff",
        is_nearest=is_nearest,
        popup=popup_content(community, distance_km=nearest.distance_from_user_km if nearest is not None else None),
    )


def user_location_marker(user: Coordinate) -> Marker:
    return Marker(
        community_id=None,
        coordinate=user,
        color=USER_COLOR,
        size=USER_SIZE,
        popup={
            "title": "Your location",
            "rows": [
                {"label": "Lat", "value": f"{user.lat:.4f}"},
                {"label": "Lng", "value": f"{user.lon:.4f}"},
            ],
        },
    )


def initial_viewport(nearest: Community | None) -> Viewport:
    if nearest is not None and nearest.coordinates is not None:
        return Viewport(center=nearest.coordinates, zoom=NEAREST_ZOOM)
    return Viewport(center=DEFAULT_CENTER, zoom=DEFAULT_ZOOM)


def compute_map_view(
    user: Coordinate | None,
    communities: Sequence[Community],
    city_coordinates: CityCoordinates,
    *,
    boundary_radius_km: float = DEFAULT_BOUNDARY_RADIUS_KM,
    boundary_points: int = DEFAULT_BOUNDARY_POINTS,
) -> MapView:
    found = find_nearest_index(user, communities, city_coordinates) if user is not None else None
    nearest_idx, nearest = found if found is not None else (None, None)

    markers: list[Marker] = []
    for idx, community in enumerate(communities):
        coords = resolve_coordinates(community, city_coordinates)
        if coords is None:
            continue
        # Flag by position: ids are not guaranteed unique in the catalog.
        flagged = nearest if idx == nearest_idx else None
        markers.append(_community_marker(community, coords, nearest=flagged))

    boundary = None
    if nearest is not None and nearest.coordinates is not None:
        boundary = boundary_feature(
            center_lat=nearest.coordinates.lat,
            center_lon=nearest.coordinates.lon,
            name=nearest.neighborhood,
            radius_km=boundary_radius_km,
            num_points=boundary_points,
        )

    return MapView(
        markers=markers,
        user_marker=user_location_marker(user) if user is not None else None,
        nearest=nearest,
        boundary=boundary,
        viewport=initial_viewport(nearest),
        total_communities=len(communities),
    )


def view_options_from_settings(settings: dict[str, Any] | None) -> dict[str, Any]:
    locator = (settings or {}).get("locator", {}) or {}
    return {
        "boundary_radius_km": float(locator.get("boundary_radius_km", DEFAULT_BOUNDARY_RADIUS_KM)),
        "boundary_points": int(locator.get("boundary_points", DEFAULT_BOUNDARY_POINTS)),
    }
