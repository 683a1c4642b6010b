"""
Community catalog loading and normalization.

Communities reach the locator from one of two CSV files:
- `data/raw/backend/communities.csv`, a snapshot written by
  `communitymap.ingestion.fetch_communities` from the hosted backend, or
- `data/catalogs/communities.csv`, a hand-maintained catalog.

This module only loads and normalizes (column aliases, whitespace, numeric
coercion, derived `project_count`). Hard rules live in
`communitymap.catalogs.validators` so "load" and "validate" stay decoupled.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import pandas as pd

from communitymap.locator.model import Community

# Backend (Portuguese) and common mapping-UI names -> catalog column names.
COLUMN_ALIASES: dict[str, str] = {
    "cidade": "city",
    "estado": "state",
    "bairro": "neighborhood",
    "idh": "hdi",
    "total_beneficiarios": "beneficiaries",
    "latitude": "lat",
    "longitude": "lon",
    "lng": "lon",
    "id_comunidade": "community_id",
}

COMMUNITY_COLUMNS = ["id", "city", "state", "neighborhood", "hdi", "beneficiaries", "lat", "lon", "project_count"]


def _rename_aliases(df: pd.DataFrame) -> pd.DataFrame:
    # Only rename when the canonical name is not already present.
    rename = {src: dst for src, dst in COLUMN_ALIASES.items() if src in df.columns and dst not in df.columns}
    return df.rename(columns=rename) if rename else df


def _strip_string_columns(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    for c in columns:
        if c not in df.columns:
            continue
        # `string` dtype keeps missing values as <NA> instead of the literal "nan".
        df[c] = df[c].astype("string").str.strip()
    return df


def _coerce_numeric(df: pd.DataFrame) -> pd.DataFrame:
    for c in ["lat", "lon", "hdi", "beneficiaries", "project_count"]:
        if c not in df.columns:
            continue
        df[c] = pd.to_numeric(df[c], errors="coerce")
    # Missing HDI means "not calculated" and is stored as 0, like the backend does.
    for c in ["hdi", "beneficiaries", "project_count"]:
        if c in df.columns:
            df[c] = df[c].fillna(0)
    return df


def attach_project_counts(communities: pd.DataFrame, projects: pd.DataFrame) -> pd.DataFrame:
    """
    Derive `project_count` from a projects table keyed by `community_id`.
    Communities without projects get 0.
    """
    projects = _rename_aliases(projects.copy())
    if "community_id" not in projects.columns:
        raise ValueError("projects table is missing 'community_id'")
    counts = projects["community_id"].astype("string").str.strip().value_counts()
    df = communities.copy()
    df["project_count"] = df["id"].astype("string").map(counts).fillna(0).astype(int)
    return df


def normalize_communities(df: pd.DataFrame) -> pd.DataFrame:
    df = _rename_aliases(df.copy())
    df = _strip_string_columns(df, ["id", "city", "state", "neighborhood"])
    df = _coerce_numeric(df)
    for c in ["hdi", "beneficiaries", "project_count"]:
        if c not in df.columns:
            df[c] = 0
    df["beneficiaries"] = df["beneficiaries"].astype(int)
    df["project_count"] = df["project_count"].astype(int)
    return df


def communities_csv_path(settings: dict[str, Any]) -> Path:
    # Prefer the backend snapshot; fall back to the hand-maintained catalog.
    raw = Path(settings["paths"]["raw_dir"]) / "backend" / "communities.csv"
    if raw.exists():
        return raw
    return Path(settings["paths"]["catalogs_dir"]) / "communities.csv"


def load_communities_catalog(settings: dict[str, Any]) -> pd.DataFrame:
    """
    Load the community catalog.

    `project_count` is derived from `catalogs/projects.csv` only when the
    loaded file does not carry its own counts. Backend snapshots already hold
    counts taken from the embedded `projetos` relation, keyed by backend ids
    that the hand-maintained projects file never uses.
    """
    path = communities_csv_path(settings)
    # Read IDs as text: backend ids are UUIDs, catalog ids may look numeric.
    df = pd.read_csv(path, dtype={"id": "string"})
    has_counts = "project_count" in df.columns
    df = normalize_communities(df)

    projects_path = Path(settings["paths"]["catalogs_dir"]) / "projects.csv"
    if not has_counts and projects_path.exists():
        projects = pd.read_csv(projects_path, dtype={"community_id": "string", "id_comunidade": "string"})
        df = attach_project_counts(df, projects)
    return df


def _opt_float(value: Any) -> float | None:
    if value is None or pd.isna(value):
        return None
    f = float(value)
    return f if math.isfinite(f) else None


def _opt_str(value: Any) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value)


def communities_from_frame(df: pd.DataFrame) -> list[Community]:
    """Rows -> `Community` objects, in row order (row order is the tie-break order)."""
    out: list[Community] = []
    for row in df.to_dict(orient="records"):
        out.append(
            Community(
                id=_opt_str(row.get("id")),
                city=_opt_str(row.get("city")),
                state=_opt_str(row.get("state")),
                neighborhood=_opt_str(row.get("neighborhood")),
                hdi=_opt_float(row.get("hdi")) or 0.0,
                beneficiaries=int(_opt_float(row.get("beneficiaries")) or 0),
                lat=_opt_float(row.get("lat")),
                lon=_opt_float(row.get("lon")),
                project_count=int(_opt_float(row.get("project_count")) or 0),
            )
        )
    return out
