from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import pandas as pd
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.gzip import GZipMiddleware

from communitymap.api.schemas import (
    CommunitySummary,
    CoordinateOut,
    LocateResponse,
    MapViewResponse,
    MarkerOut,
    NearbyResponse,
    NearestCommunity,
    ViewportOut,
)
from communitymap.catalogs.cities import build_city_coordinates
from communitymap.catalogs.load import communities_csv_path, communities_from_frame, load_communities_catalog
from communitymap.catalogs.summary import summarize_communities
from communitymap.catalogs.validate import validate_catalogs
from communitymap.locator.geolocation import acquire_user_location, fallback_location_from_settings, query_position_provider
from communitymap.locator.model import Community, Coordinate
from communitymap.locator.nearest import nearby_communities
from communitymap.locator.view import Marker
from communitymap.pipeline import LocateResult, locate
from communitymap.run_meta import file_meta, utc_now_iso
from communitymap.settings import SCENARIO_NAME_RE, load_settings

app = FastAPI(title="CommunityMap API", version="0.1.0")
app.add_middleware(GZipMiddleware, minimum_size=1000)

CONFIG_PATH = Path(os.getenv("COMMUNITYMAP_CONFIG", "config/default.yaml")).resolve()
DEFAULT_SCENARIO = os.getenv("COMMUNITYMAP_SCENARIO", "default")


@lru_cache(maxsize=8)
def _settings_for_scenario(scenario: str) -> dict[str, Any]:
    return load_settings(CONFIG_PATH, scenario=scenario)


def _scenario_settings(scenario: str | None) -> dict[str, Any]:
    name = scenario or DEFAULT_SCENARIO
    if not SCENARIO_NAME_RE.match(name):
        raise HTTPException(status_code=400, detail=f"Invalid scenario name: {name!r}")
    return _settings_for_scenario(name)


def _load_communities(settings: dict[str, Any]) -> pd.DataFrame:
    path = communities_csv_path(settings)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"Missing {path.name} (run fetch-communities first)")
    return load_communities_catalog(settings)


def _coord(c: Coordinate) -> CoordinateOut:
    return CoordinateOut(lat=c.lat, lon=c.lon)


def _summary(c: Community) -> CommunitySummary:
    return CommunitySummary(
        id=c.id,
        city=c.city,
        state=c.state,
        neighborhood=c.neighborhood,
        hdi=c.hdi,
        beneficiaries=c.beneficiaries,
        lat=c.lat,
        lon=c.lon,
        project_count=c.project_count,
    )


def _nearest(c: Community | None) -> NearestCommunity | None:
    if c is None or c.coordinates is None or c.distance_from_user_km is None:
        return None
    return NearestCommunity(
        **_summary(c).model_dump(),
        coordinates=_coord(c.coordinates),
        distance_from_user_km=c.distance_from_user_km,
    )


def _marker(m: Marker) -> MarkerOut:
    return MarkerOut(
        id=m.community_id,
        coordinate=_coord(m.coordinate),
        color=m.color,
        size=m.size,
        border_color=m.border_color,
        is_nearest=m.is_nearest,
        popup=m.popup,
    )


def _locate(scenario: str | None, lat: str | None, lon: str | None) -> LocateResult:
    settings = _scenario_settings(scenario)
    return locate(settings, lat=lat, lon=lon, communities=_load_communities(settings))


@app.get("/health")
def health() -> dict[str, Any]:
    settings = _settings_for_scenario(DEFAULT_SCENARIO)
    path = communities_csv_path(settings)
    return {
        "ok": True,
        "generated_at": utc_now_iso(),
        "config_path": str(CONFIG_PATH),
        "scenario": DEFAULT_SCENARIO,
        "communities_file": file_meta(path).__dict__,
    }


@app.get("/communities", response_model=list[CommunitySummary])
def communities(city: list[str] | None = Query(default=None), scenario: str | None = None) -> list[CommunitySummary]:
    settings = _scenario_settings(scenario)
    df = _load_communities(settings)
    if city:
        df = df[df["city"].astype(str).isin(set(city))]
    return [_summary(c) for c in communities_from_frame(df)]


@app.get("/communities/summary")
def communities_summary(city: list[str] | None = Query(default=None), scenario: str | None = None) -> dict[str, Any]:
    settings = _scenario_settings(scenario)
    return {"generated_at": utc_now_iso(), **summarize_communities(_load_communities(settings), cities=city)}


@app.get("/nearest", response_model=LocateResponse)
def nearest(lat: str | None = None, lon: str | None = None, scenario: str | None = None) -> LocateResponse:
    result = _locate(scenario, lat, lon)
    return LocateResponse(
        user_location=_coord(result.user_location),
        geolocation_state=result.geolocation_state.value,
        nearest=_nearest(result.view.nearest),
    )


@app.get("/nearby", response_model=NearbyResponse)
def nearby(
    lat: str | None = None,
    lon: str | None = None,
    radius_km: float | None = Query(default=None, gt=0),
    scenario: str | None = None,
) -> NearbyResponse:
    settings = _scenario_settings(scenario)
    radius = float(radius_km or (settings.get("locator", {}) or {}).get("nearby_radius_km", 10.0))
    user, state = acquire_user_location(
        query_position_provider(lat, lon),
        fallback=fallback_location_from_settings(settings),
    )
    found = nearby_communities(
        user,
        communities_from_frame(_load_communities(settings)),
        build_city_coordinates(settings),
        radius_km=radius,
    )
    return NearbyResponse(
        user_location=_coord(user),
        geolocation_state=state.value,
        radius_km=radius,
        communities=[n for n in (_nearest(c) for c in found) if n is not None],
    )


@app.get("/map-view", response_model=MapViewResponse)
def map_view(lat: str | None = None, lon: str | None = None, scenario: str | None = None) -> MapViewResponse:
    result = _locate(scenario, lat, lon)
    view = result.view
    return MapViewResponse(
        user_location=_coord(result.user_location),
        geolocation_state=result.geolocation_state.value,
        nearest=_nearest(view.nearest),
        subtitle=view.subtitle,
        viewport=ViewportOut(center=_coord(view.viewport.center), zoom=view.viewport.zoom),
        markers=[_marker(m) for m in view.markers],
        user_marker=_marker(view.user_marker) if view.user_marker is not None else None,
        boundary=view.boundary,
    )


@app.get("/map-view.geojson")
def map_view_geojson(lat: str | None = None, lon: str | None = None, scenario: str | None = None) -> dict[str, Any]:
    return _locate(scenario, lat, lon).view.to_geojson()


@app.post("/control/catalogs/validate")
def control_validate_catalogs(scenario: str | None = None) -> dict[str, Any]:
    settings = _scenario_settings(scenario)
    return validate_catalogs(
        settings,
        communities=_load_communities(settings),
        write_report=True,
        raise_on_error=False,
    )
