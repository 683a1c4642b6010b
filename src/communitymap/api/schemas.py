from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CoordinateOut(BaseModel):
    lat: float
    lon: float


class CommunitySummary(BaseModel):
    id: str
    city: str
    state: str
    neighborhood: str
    hdi: float = 0.0
    beneficiaries: int = 0
    lat: float | None = None
    lon: float | None = None
    project_count: int = 0


class NearestCommunity(CommunitySummary):
    coordinates: CoordinateOut
    distance_from_user_km: float = Field(ge=0.0)


class LocateResponse(BaseModel):
    user_location: CoordinateOut
    geolocation_state: str
    nearest: NearestCommunity | None = None


class NearbyResponse(BaseModel):
    user_location: CoordinateOut
    geolocation_state: str
    radius_km: float
    communities: list[NearestCommunity] = Field(default_factory=list)


class ViewportOut(BaseModel):
    center: CoordinateOut
    zoom: int


class MarkerOut(BaseModel):
    id: str | None = None
    coordinate: CoordinateOut
    color: str
    size: int
    border_color: str
    is_nearest: bool = False
    popup: dict[str, Any] = Field(default_factory=dict)


class MapViewResponse(LocateResponse):
    subtitle: str
    viewport: ViewportOut
    markers: list[MarkerOut] = Field(default_factory=list)
    user_marker: MarkerOut | None = None
    boundary: dict[str, Any] | None = None
