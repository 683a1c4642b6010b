from pathlib import Path

import pandas as pd
import pytest
from fastapi import HTTPException

from communitymap.api import main


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch) -> dict:
    catalogs = tmp_path / "catalogs"
    catalogs.mkdir()
    pd.DataFrame(
        [
            {"id": "x", "city": "São Paulo", "state": "SP", "neighborhood": "Community X", "hdi": 0.5, "beneficiaries": 10, "lat": -23.55, "lon": -46.63},
            {"id": "y", "city": "Rio de Janeiro", "state": "RJ", "neighborhood": "Community Y", "hdi": 0.7, "beneficiaries": 20, "lat": -22.9068, "lon": -43.1729},
            {"id": "z", "city": "Recife", "state": "PE", "neighborhood": "Community Z", "hdi": 0.0, "beneficiaries": 0, "lat": None, "lon": None},
        ]
    ).to_csv(catalogs / "communities.csv", index=False)
    s = {
        "paths": {
            "catalogs_dir": str(catalogs),
            "raw_dir": str(tmp_path / "raw"),
            "reports_dir": str(tmp_path / "reports"),
        },
        "locator": {"nearby_radius_km": 10.0},
    }
    monkeypatch.setattr(main, "_settings_for_scenario", lambda scenario: s)
    return s


def test_nearest_endpoint(settings) -> None:
    out = main.nearest(lat="-23.5505", lon="-46.6333", scenario=None)
    assert out.geolocation_state == "resolved"
    assert out.nearest is not None
    assert out.nearest.id == "x"


def test_nearest_endpoint_falls_back_on_bad_position(settings) -> None:
    out = main.nearest(lat="not-a-number", lon="-46.6", scenario=None)
    assert out.geolocation_state == "denied_and_defaulted"
    assert out.user_location.lat == -23.5505


def test_map_view_endpoint(settings) -> None:
    out = main.map_view(lat=None, lon=None, scenario=None)
    assert out.viewport.zoom == 12
    assert len(out.markers) == 3
    assert sum(1 for m in out.markers if m.is_nearest) == 1
    assert out.boundary is not None
    assert out.user_marker is not None


def test_nearby_endpoint(settings) -> None:
    out = main.nearby(lat=None, lon=None, radius_km=None, scenario=None)
    assert out.radius_km == 10.0
    assert [c.id for c in out.communities] == ["x"]


def test_communities_and_summary(settings) -> None:
    rows = main.communities(city=["Recife"], scenario=None)
    assert [r.id for r in rows] == ["z"]
    summary = main.communities_summary(city=None, scenario=None)
    assert summary["metrics"]["communities_count"] == 3


def test_validate_endpoint_writes_report(settings) -> None:
    report = main.control_validate_catalogs(scenario=None)
    assert report["ok"] is True
    assert (Path(settings["paths"]["reports_dir"]) / "catalog_validation.json").exists()


def test_missing_catalog_is_404(settings) -> None:
    (Path(settings["paths"]["catalogs_dir"]) / "communities.csv").unlink()
    with pytest.raises(HTTPException) as exc:
        main.nearest(lat=None, lon=None, scenario=None)
    assert exc.value.status_code == 404


def test_scenario_outside_scenarios_dir_is_rejected(settings) -> None:
    with pytest.raises(HTTPException) as exc:
        main.nearest(lat=None, lon=None, scenario="../../x")
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException):
        main.control_validate_catalogs(scenario="rio/../../secrets")
