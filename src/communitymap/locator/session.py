"""
Caller-owned update loop for the map.

The user's position and the community list arrive independently and in any
order. The session stores whichever input arrives, and recomputes the map
view only when both are present, and again on every later change. A session
that was closed (the page went away) ignores late inputs instead of
recomputing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from communitymap.catalogs.cities import DEFAULT_CITY_COORDINATES
from communitymap.locator.model import CityCoordinates, Community, Coordinate
from communitymap.locator.view import MapView, compute_map_view
from communitymap.log import get_logger


@dataclass
class LocatorSession:
    city_coordinates: CityCoordinates = field(default_factory=lambda: DEFAULT_CITY_COORDINATES)
    view_options: dict[str, Any] = field(default_factory=dict)
    user_location: Coordinate | None = None
    communities: list[Community] | None = None
    view: MapView | None = None
    closed: bool = False
    recompute_count: int = 0

    def set_user_location(self, location: Coordinate) -> MapView | None:
        if self.closed:
            get_logger().debug("Dropping location update for closed session")
            return None
        self.user_location = location
        return self._recompute()

    def set_communities(self, communities: Sequence[Community]) -> MapView | None:
        if self.closed:
            get_logger().debug("Dropping community update for closed session")
            return None
        self.communities = list(communities)
        return self._recompute()

    def close(self) -> None:
        self.closed = True

    @property
    def nearest(self) -> Community | None:
        return self.view.nearest if self.view is not None else None

    def _recompute(self) -> MapView | None:
        if self.user_location is None or self.communities is None:
            return None
        self.view = compute_map_view(
            self.user_location,
            self.communities,
            self.city_coordinates,
            **self.view_options,
        )
        self.recompute_count += 1
        return self.view
