"""
End-to-end locate flow shared by the CLI and the API.

1) Load the community catalog (backend snapshot or hand-maintained CSV).
2) Acquire the user's position (client-reported, else the fallback).
3) Feed both into a `LocatorSession`, which derives the map view.
4) Optionally write the view as GeoJSON for static map pages.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from communitymap.catalogs.cities import build_city_coordinates
from communitymap.catalogs.load import communities_from_frame, load_communities_catalog
from communitymap.locator.geolocation import (
    GeolocationState,
    acquire_user_location,
    fallback_location_from_settings,
    query_position_provider,
)
from communitymap.locator.model import Coordinate
from communitymap.locator.session import LocatorSession
from communitymap.locator.view import MapView, view_options_from_settings
from communitymap.log import get_logger


@dataclass(frozen=True)
class LocateResult:
    user_location: Coordinate
    geolocation_state: GeolocationState
    view: MapView


def locate(
    settings: dict[str, Any],
    *,
    lat: Any = None,
    lon: Any = None,
    communities: pd.DataFrame | None = None,
) -> LocateResult:
    logger = get_logger()
    df = load_communities_catalog(settings) if communities is None else communities

    session = LocatorSession(
        city_coordinates=build_city_coordinates(settings),
        view_options=view_options_from_settings(settings),
    )
    session.set_communities(communities_from_frame(df))

    user, state = acquire_user_location(
        query_position_provider(lat, lon),
        fallback=fallback_location_from_settings(settings),
    )
    view = session.set_user_location(user)
    if view is None:
        raise RuntimeError("Locator session produced no map view")

    if view.nearest is not None:
        logger.info(
            "Nearest community %s (%s) at %.2f km",
            view.nearest.id,
            view.nearest.neighborhood,
            view.nearest.distance_from_user_km,
        )
    else:
        logger.info("No placeable community among %s rows", len(df))
    return LocateResult(user_location=user, geolocation_state=state, view=view)


def write_map_view(result: LocateResult, out_path: Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = result.view.to_geojson()
    payload["viewport"] = {
        "center": result.view.viewport.center.as_lonlat(),
        "zoom": result.view.viewport.zoom,
    }
    payload["subtitle"] = result.view.subtitle
    payload["geolocation_state"] = result.geolocation_state.value
    out_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return out_path
