"""
Community catalog validation rules.

The locator itself accepts any numbers it is given (a coordinate out of world
bounds still yields a distance). Bad data is reported here instead, as a
structured result:
- `errors`: must-fix issues (schema, ids, impossible values),
- `warnings`: rows the map will not be able to place,
- `stats`: small counts for reports and the API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

import pandas as pd

from communitymap.locator.model import CityCoordinates

REQUIRED_COLUMNS = ["id", "city", "state", "neighborhood"]


@dataclass(frozen=True)
class CatalogValidationResult:
    errors: list[str]
    warnings: list[str]
    stats: dict[str, Any]

    @property
    def ok(self) -> bool:
        # Warnings never fail validation.
        return len(self.errors) == 0


def _require_columns(df: pd.DataFrame, required: Iterable[str]) -> list[str]:
    return [f"Missing required column: {c}" for c in required if c not in df.columns]


def _validate_ids(df: pd.DataFrame, *, label: str) -> list[str]:
    errors: list[str] = []
    if "id" not in df.columns:
        return errors
    ids = df["id"].astype("string").str.strip()
    missing = ids.isna() | (ids == "")
    if missing.any():
        errors.append(f"{label}: 'id' contains empty values")
    present = ids[~missing]
    dup = present[present.duplicated(keep=False)]
    if not dup.empty:
        examples = ", ".join(sorted(set(dup.tolist()))[:5])
        errors.append(f"{label}: 'id' contains duplicates (e.g., {examples})")
    return errors


def _validate_coordinates(df: pd.DataFrame, *, label: str) -> list[str]:
    errors: list[str] = []
    if "lat" not in df.columns or "lon" not in df.columns:
        return errors
    lat = pd.to_numeric(df["lat"], errors="coerce")
    lon = pd.to_numeric(df["lon"], errors="coerce")
    # Only one of the pair present is unusable: the locator needs both.
    half = lat.isna() ^ lon.isna()
    if half.any():
        errors.append(f"{label}: {int(half.sum())} rows have only one of lat/lon")
    if (lat < -90).any() or (lat > 90).any() or (lon < -180).any() or (lon > 180).any():
        errors.append(f"{label}: lat/lon out of valid world bounds")
    return errors


def _validate_indicators(df: pd.DataFrame, *, label: str) -> list[str]:
    errors: list[str] = []
    if "hdi" in df.columns:
        hdi = pd.to_numeric(df["hdi"], errors="coerce")
        if ((hdi < 0) | (hdi > 1)).any():
            errors.append(f"{label}: 'hdi' outside [0, 1]")
    if "beneficiaries" in df.columns:
        people = pd.to_numeric(df["beneficiaries"], errors="coerce")
        if (people < 0).any():
            errors.append(f"{label}: 'beneficiaries' contains negative values")
    return errors


def validate_communities_catalog(
    df: pd.DataFrame,
    *,
    city_coordinates: CityCoordinates,
    label: str = "communities",
) -> CatalogValidationResult:
    errors = _require_columns(df, REQUIRED_COLUMNS)
    warnings: list[str] = []
    errors += _validate_ids(df, label=label)
    errors += _validate_coordinates(df, label=label)
    errors += _validate_indicators(df, label=label)

    precise = pd.Series([False] * len(df), index=df.index)
    if "lat" in df.columns and "lon" in df.columns:
        precise = pd.to_numeric(df["lat"], errors="coerce").notna() & pd.to_numeric(df["lon"], errors="coerce").notna()
    in_table = pd.Series([False] * len(df), index=df.index)
    if "city" in df.columns:
        in_table = df["city"].astype("string").str.strip().isin(set(city_coordinates.keys())).fillna(False)
    unplaceable = ~precise & ~in_table
    if unplaceable.any():
        examples = ", ".join(df.loc[unplaceable, "id"].astype(str).tolist()[:5]) if "id" in df.columns else ""
        warnings.append(
            f"{label}: {int(unplaceable.sum())} rows have no coordinates and no city fallback (e.g., {examples})"
        )

    stats = {
        "rows": int(len(df)),
        "with_precise_coordinates": int(precise.sum()),
        "city_fallback_only": int((~precise & in_table).sum()),
        "unplaceable": int(unplaceable.sum()),
    }
    return CatalogValidationResult(errors=errors, warnings=warnings, stats=stats)
