import json
from pathlib import Path

import pandas as pd
import pytest

from communitymap.catalogs.cities import DEFAULT_CITY_COORDINATES
from communitymap.catalogs.validate import CatalogValidationError, format_validation_summary, validate_catalogs
from communitymap.catalogs.validators import validate_communities_catalog


def _row(**overrides):
    row = {
        "id": "C-001",
        "city": "São Paulo",
        "state": "SP",
        "neighborhood": "Centro",
        "hdi": 0.5,
        "beneficiaries": 10,
        "lat": -23.5,
        "lon": -46.6,
    }
    row.update(overrides)
    return row


def test_valid_catalog_passes() -> None:
    df = pd.DataFrame([_row(), _row(id="C-002", lat=None, lon=None)])
    result = validate_communities_catalog(df, city_coordinates=DEFAULT_CITY_COORDINATES)
    assert result.ok
    assert result.warnings == []
    assert result.stats["with_precise_coordinates"] == 1
    assert result.stats["city_fallback_only"] == 1


def test_out_of_world_bounds_fails() -> None:
    df = pd.DataFrame([_row(lat=123.0)])
    result = validate_communities_catalog(df, city_coordinates=DEFAULT_CITY_COORDINATES)
    assert not result.ok
    assert any("out of valid world bounds" in e for e in result.errors)


def test_duplicate_ids_and_bad_indicators_fail() -> None:
    df = pd.DataFrame([_row(), _row(hdi=1.5, beneficiaries=-1)])
    result = validate_communities_catalog(df, city_coordinates=DEFAULT_CITY_COORDINATES)
    assert any("duplicates" in e for e in result.errors)
    assert any("'hdi' outside [0, 1]" in e for e in result.errors)
    assert any("negative" in e for e in result.errors)


def test_missing_columns_fail() -> None:
    df = pd.DataFrame([{"id": "X"}])
    result = validate_communities_catalog(df, city_coordinates=DEFAULT_CITY_COORDINATES)
    assert "Missing required column: city" in result.errors


def test_unplaceable_rows_warn() -> None:
    df = pd.DataFrame([_row(id="G-1", city="Atlantis", lat=None, lon=None)])
    result = validate_communities_catalog(df, city_coordinates=DEFAULT_CITY_COORDINATES)
    assert result.ok
    assert result.stats["unplaceable"] == 1
    assert any("G-1" in w for w in result.warnings)


def test_validate_catalogs_writes_reports(tmp_path: Path) -> None:
    settings = {"paths": {"reports_dir": str(tmp_path / "reports")}}
    df = pd.DataFrame([_row(), _row(id="C-002", lat=95.0)])

    report = validate_catalogs(settings, communities=df, raise_on_error=False)

    assert report["ok"] is False
    saved = json.loads((tmp_path / "reports" / "catalog_validation.json").read_text(encoding="utf-8"))
    assert saved["errors"] == report["errors"]
    assert "Status: FAILED" in (tmp_path / "reports" / "catalog_validation.md").read_text(encoding="utf-8")
    assert format_validation_summary(report).startswith("FAILED")

    with pytest.raises(CatalogValidationError):
        validate_catalogs(settings, communities=df, write_report=False)
