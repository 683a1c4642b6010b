from __future__ import annotations

from typing import Any

import pandas as pd


def filter_df_by_cities(df: pd.DataFrame, cities: list[str] | None, *, city_col: str = "city") -> pd.DataFrame:
    if not cities or city_col not in df.columns:
        return df
    return df[df[city_col].astype(str).isin({str(c) for c in cities})].copy()


def hdi_buckets(values: pd.Series) -> dict[str, int]:
    # Same thresholds as the marker colors; 0 ("not calculated") counts as low.
    s = pd.to_numeric(values, errors="coerce").fillna(0)
    low = int((s < 0.4).sum())
    mid = int(((s >= 0.4) & (s < 0.6)).sum())
    high = int((s >= 0.6).sum())
    return {"low": low, "mid": mid, "high": high}


def communities_by_city(df: pd.DataFrame) -> list[dict[str, Any]]:
    if df.empty or "city" not in df.columns:
        return []
    out = (
        df.assign(city=df["city"].astype(str))
        .groupby("city", dropna=False)
        .size()
        .reset_index(name="community_count")
        .sort_values(["community_count", "city"], ascending=[False, True])
    )
    return [{"city": str(r["city"]), "community_count": int(r["community_count"])} for _, r in out.iterrows()]


def summarize_communities(communities: pd.DataFrame, *, cities: list[str] | None = None) -> dict[str, Any]:
    df = filter_df_by_cities(communities, cities)
    hdi = pd.to_numeric(df["hdi"], errors="coerce") if "hdi" in df.columns else pd.Series(dtype=float)
    # Averages skip uncalculated (0) HDI values.
    calculated = hdi[hdi > 0]
    return {
        "metrics": {
            "communities_count": int(len(df)),
            "avg_hdi": float(calculated.mean()) if not calculated.empty else None,
            "hdi_buckets": hdi_buckets(hdi) if not df.empty else {"low": 0, "mid": 0, "high": 0},
            "beneficiaries_total": int(pd.to_numeric(df.get("beneficiaries", pd.Series(dtype=float)), errors="coerce").fillna(0).sum()),
            "projects_total": int(pd.to_numeric(df.get("project_count", pd.Series(dtype=float)), errors="coerce").fillna(0).sum()),
        },
        "by_city": communities_by_city(df),
    }
