"""
Fetch communities from the hosted backend and write a local snapshot.

The map only shows communities that have precise coordinates, so the query
filters out rows with a null latitude or longitude on the server side. Linked
projects are embedded as `projetos(id)` so `project_count` can be derived
without a second request.

Outputs (under `data/raw/backend/`):
- `communities.csv` in the catalog schema read by `communitymap.catalogs.load`,
- `communities.meta.json` with counts and a config fingerprint.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

import pandas as pd

from communitymap.cache import DiskCache
from communitymap.catalogs.load import COMMUNITY_COLUMNS, normalize_communities
from communitymap.ingestion.backend_client import BackendClient
from communitymap.log import get_logger
from communitymap.run_meta import config_fingerprint, json_hash, new_run_id, utc_now_iso


def _normalize_row(item: dict[str, Any], *, projects_relation: str) -> dict[str, Any] | None:
    community_id = item.get("id")
    if community_id is None:
        return None
    projects = item.get(projects_relation)
    return {
        "id": str(community_id),
        "city": item.get("cidade"),
        "state": item.get("estado"),
        "neighborhood": item.get("bairro"),
        "hdi": item.get("idh"),
        "beneficiaries": item.get("total_beneficiarios"),
        # Numeric columns may come back as strings; normalization coerces them.
        "lat": item.get("latitude"),
        "lon": item.get("longitude"),
        "project_count": len(projects) if isinstance(projects, list) else 0,
    }


def communities_query(settings: dict[str, Any]) -> tuple[str, dict[str, str], str]:
    backend = settings.get("backend", {}) or {}
    table = str(backend.get("communities_table", "comunidades"))
    relation = str(backend.get("projects_relation", "projetos"))
    params = {
        "select": f"*,{relation}(id)",
        "latitude": "not.is.null",
        "longitude": "not.is.null",
    }
    return table, params, relation


def fetch_and_write_communities(
    settings: dict[str, Any],
    *,
    client: BackendClient | None = None,
    refresh: bool = False,
    run_id: str | None = None,
) -> Path:
    logger = get_logger()
    backend = settings.get("backend", {}) or {}
    if client is None:
        cache = DiskCache(Path(settings["paths"]["cache_dir"]))
        client = BackendClient.from_env(settings=settings, cache=cache)

    table, params, relation = communities_query(settings)
    cache_ttl_s = backend.get("cache_ttl_s")
    items = client.get_rows(
        table,
        params=params,
        cache_ttl_s=int(cache_ttl_s) if cache_ttl_s is not None else None,
        refresh=refresh,
    )

    rows = []
    for item in items:
        if not isinstance(item, dict):
            continue
        row = _normalize_row(item, projects_relation=relation)
        if row:
            rows.append(row)
    skipped = len(items) - len(rows)
    if skipped:
        logger.warning("Skipped %s malformed community rows from %s", skipped, table)

    df = normalize_communities(pd.DataFrame(rows, columns=COMMUNITY_COLUMNS))
    df = df.drop_duplicates(subset=["id"], keep="first").reset_index(drop=True)

    out_dir = Path(settings["paths"]["raw_dir"]) / "backend"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / "communities.csv"
    df.to_csv(out_path, index=False)

    fingerprint = config_fingerprint(settings)
    meta = {
        "run_id": str(run_id or new_run_id()),
        "generated_at": utc_now_iso(),
        "generated_at_epoch_s": int(time.time()),
        "table": table,
        "params": params,
        "total": int(len(df)),
        "skipped": int(skipped),
        "projects_total": int(df["project_count"].sum()) if not df.empty else 0,
        "by_city": {str(k): int(v) for k, v in df.groupby("city").size().items()} if not df.empty else {},
        "config_hash": json_hash(fingerprint),
        "config_fingerprint": fingerprint,
    }
    (out_dir / "communities.meta.json").write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Wrote %s communities to %s", len(df), out_path)
    return out_path
