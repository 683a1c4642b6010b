"""
City-level fallback coordinates.

Most communities carry precise neighborhood coordinates from the backend.
For the ones that do not, the map can still place them at the center of
their city, provided the city is in this table. The table is read-only data:
`build_city_coordinates` returns a fresh immutable mapping that callers pass
into the locator explicitly.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

from communitymap.locator.model import CityCoordinates, Coordinate

# Major Brazilian cities where partner NGOs operate.
DEFAULT_CITY_COORDINATES: CityCoordinates = MappingProxyType(
    {
        "São Paulo": Coordinate(lat=-23.5505, lon=-46.6333),
        "Rio de Janeiro": Coordinate(lat=-22.9068, lon=-43.1729),
        "Belo Horizonte": Coordinate(lat=-19.9167, lon=-43.9345),
        "Salvador": Coordinate(lat=-12.9714, lon=-38.5014),
        "Brasília": Coordinate(lat=-15.8267, lon=-47.9218),
        "Fortaleza": Coordinate(lat=-3.7319, lon=-38.5267),
        "Recife": Coordinate(lat=-8.0476, lon=-34.8770),
        "Porto Alegre": Coordinate(lat=-30.0346, lon=-51.2177),
        "Manaus": Coordinate(lat=-3.1190, lon=-60.0217),
        "Curitiba": Coordinate(lat=-25.4284, lon=-49.2733),
    }
)


def _parse_override(name: str, raw: Any) -> Coordinate:
    # Accept both {"lat": .., "lon": ..} and a two-item [lat, lon] list from YAML.
    if isinstance(raw, dict):
        lat = raw.get("lat")
        lon = raw.get("lon", raw.get("lng"))
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        lat, lon = raw
    else:
        raise ValueError(f"Invalid coordinate for city {name!r}: {raw!r}")
    if lat is None or lon is None:
        raise ValueError(f"Invalid coordinate for city {name!r}: {raw!r}")
    return Coordinate(lat=float(lat), lon=float(lon))


def build_city_coordinates(settings: dict[str, Any] | None = None) -> CityCoordinates:
    """
    Default table merged with `locator.city_coordinates` from settings.
    Config entries win over built-in ones with the same name.
    """
    table = dict(DEFAULT_CITY_COORDINATES)
    overrides = ((settings or {}).get("locator", {}) or {}).get("city_coordinates") or {}
    for name, raw in overrides.items():
        table[str(name).strip()] = _parse_override(str(name), raw)
    return MappingProxyType(table)
