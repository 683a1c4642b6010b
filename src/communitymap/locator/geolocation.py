"""
One-shot acquisition of the user's position.

The position comes from a provider (in the web console, the browser's
geolocation API, surfaced to the server as `lat`/`lon` query parameters).
Whatever happens, the caller gets a coordinate back: when the capability is
absent or the request is denied, the configured fallback location is used so
the nearest-community computation always has an input. In that case the
"nearest" community is plausible but may be wrong; this is accepted.

State machine: idle -> requesting -> resolved | denied_and_defaulted.
There is no retry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from communitymap.locator.model import Coordinate
from communitymap.log import get_logger

# São Paulo city center.
DEFAULT_FALLBACK_LOCATION = Coordinate(lat=-23.5505, lon=-46.6333)


class GeolocationError(RuntimeError):
    # Raised by providers when the position is denied or unavailable.
    pass


class GeolocationState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    RESOLVED = "resolved"
    DENIED_AND_DEFAULTED = "denied_and_defaulted"


GeolocationProvider = Callable[[], Coordinate | None]


@dataclass
class GeolocationRequest:
    provider: GeolocationProvider | None
    fallback: Coordinate = DEFAULT_FALLBACK_LOCATION
    state: GeolocationState = GeolocationState.IDLE
    location: Coordinate | None = None
    error: str | None = None

    def _default(self, reason: str) -> Coordinate:
        get_logger().warning("Geolocation unavailable (%s); using fallback %s,%s", reason, self.fallback.lat, self.fallback.lon)
        self.error = reason
        self.location = self.fallback
        self.state = GeolocationState.DENIED_AND_DEFAULTED
        return self.fallback

    def run(self) -> Coordinate:
        if self.state is not GeolocationState.IDLE:
            # One shot: a finished request keeps its answer.
            if self.location is not None:
                return self.location
            raise RuntimeError(f"Geolocation request already {self.state.value}")

        if self.provider is None:
            return self._default("not supported")

        self.state = GeolocationState.REQUESTING
        try:
            position = self.provider()
        except GeolocationError as e:
            return self._default(str(e) or "denied")

        if position is None or not (math.isfinite(position.lat) and math.isfinite(position.lon)):
            return self._default("no position")

        self.location = position
        self.state = GeolocationState.RESOLVED
        return position


def acquire_user_location(
    provider: GeolocationProvider | None,
    *,
    fallback: Coordinate = DEFAULT_FALLBACK_LOCATION,
) -> tuple[Coordinate, GeolocationState]:
    request = GeolocationRequest(provider=provider, fallback=fallback)
    location = request.run()
    return location, request.state


def _parse_float(raw: Any) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def query_position_provider(lat: Any, lon: Any) -> GeolocationProvider | None:
    """
    Provider for a position reported by a client (query string, CLI flags).
    Both values absent means the client has no geolocation capability.
    """
    if lat is None and lon is None:
        return None

    def provide() -> Coordinate:
        lat_f = _parse_float(lat)
        lon_f = _parse_float(lon)
        if lat_f is None or lon_f is None:
            raise GeolocationError(f"invalid position lat={lat!r} lon={lon!r}")
        return Coordinate(lat=lat_f, lon=lon_f)

    return provide


def fallback_location_from_settings(settings: dict[str, Any] | None) -> Coordinate:
    raw = ((settings or {}).get("locator", {}) or {}).get("fallback_location") or {}
    lat = _parse_float(raw.get("lat"))
    lon = _parse_float(raw.get("lon"))
    if lat is None or lon is None:
        return DEFAULT_FALLBACK_LOCATION
    return Coordinate(lat=lat, lon=lon)
