from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Mapping


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def as_lonlat(self) -> list[float]:
        # GeoJSON order.
        return [float(self.lon), float(self.lat)]


# City name -> approximate coordinate, used when a community has no precise location.
CityCoordinates = Mapping[str, Coordinate]


@dataclass(frozen=True)
class Community:
    id: str
    city: str
    state: str
    neighborhood: str
    hdi: float = 0.0
    beneficiaries: int = 0
    lat: float | None = None
    lon: float | None = None
    project_count: int = 0
    coordinates: Coordinate | None = None
    distance_from_user_km: float | None = None

    @property
    def precise_coordinate(self) -> Coordinate | None:
        if self.lat is None or self.lon is None:
            return None
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            return None
        return Coordinate(lat=float(self.lat), lon=float(self.lon))

    def annotated(self, *, coordinates: Coordinate, distance_km: float) -> "Community":
        return replace(self, coordinates=coordinates, distance_from_user_km=float(distance_km))

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "city": self.city,
            "state": self.state,
            "neighborhood": self.neighborhood,
            "hdi": float(self.hdi),
            "beneficiaries": int(self.beneficiaries),
            "lat": self.lat,
            "lon": self.lon,
            "project_count": int(self.project_count),
            "coordinates": (
                {"lat": self.coordinates.lat, "lon": self.coordinates.lon} if self.coordinates else None
            ),
            "distance_from_user_km": self.distance_from_user_km,
        }
