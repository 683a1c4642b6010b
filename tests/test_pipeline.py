import json
from pathlib import Path

import pandas as pd
import pytest

from communitymap.locator.geolocation import GeolocationState
from communitymap.locator.model import Coordinate
from communitymap.locator.session import LocatorSession
from communitymap.pipeline import locate, write_map_view

COMMUNITIES = pd.DataFrame(
    [
        {"id": "x", "city": "São Paulo", "state": "SP", "neighborhood": "Community X", "hdi": 0.5, "beneficiaries": 10, "lat": -23.55, "lon": -46.63, "project_count": 1},
        {"id": "y", "city": "Rio de Janeiro", "state": "RJ", "neighborhood": "Community Y", "hdi": 0.7, "beneficiaries": 20, "lat": -22.9068, "lon": -43.1729, "project_count": 0},
    ]
)


def test_locate_with_reported_position() -> None:
    result = locate({}, lat="-22.91", lon="-43.17", communities=COMMUNITIES)
    assert result.geolocation_state is GeolocationState.RESOLVED
    assert result.view.nearest is not None
    assert result.view.nearest.id == "y"


def test_locate_without_position_uses_fallback() -> None:
    result = locate({}, communities=COMMUNITIES)
    assert result.geolocation_state is GeolocationState.DENIED_AND_DEFAULTED
    assert result.user_location == Coordinate(lat=-23.5505, lon=-46.6333)
    assert result.view.nearest is not None
    assert result.view.nearest.id == "x"
    assert result.view.nearest.distance_from_user_km < 0.5


def test_locate_reads_catalog_from_settings(tmp_path: Path) -> None:
    catalogs = tmp_path / "catalogs"
    catalogs.mkdir()
    COMMUNITIES.to_csv(catalogs / "communities.csv", index=False)
    settings = {
        "paths": {"catalogs_dir": str(catalogs), "raw_dir": str(tmp_path / "raw")},
        "locator": {"fallback_location": {"lat": -22.9, "lon": -43.2}, "boundary_points": 8},
    }
    result = locate(settings)
    assert result.view.nearest is not None
    assert result.view.nearest.id == "y"
    assert len(result.view.boundary["geometry"]["coordinates"][0]) == 9


def test_write_map_view(tmp_path: Path) -> None:
    result = locate({}, communities=COMMUNITIES)
    out = write_map_view(result, tmp_path / "out" / "map_view.geojson")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["type"] == "FeatureCollection"
    assert data["viewport"] == {"center": [-46.63, -23.55], "zoom": 12}
    assert data["geolocation_state"] == "denied_and_defaulted"
    assert data["subtitle"].endswith("- 2 locations")


def test_locate_raises_when_session_yields_no_view(monkeypatch) -> None:
    monkeypatch.setattr(LocatorSession, "set_user_location", lambda self, location: None)
    with pytest.raises(RuntimeError, match="no map view"):
        locate({}, communities=COMMUNITIES)
