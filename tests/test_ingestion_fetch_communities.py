from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from communitymap.ingestion import fetch_communities


class _FakeBackendClient:
    def __init__(self, rows: list[Any]) -> None:
        self.rows = rows
        self.calls: list[dict[str, Any]] = []

    def get_rows(
        self,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        cache_ttl_s: int | None = None,
        refresh: bool = False,
    ) -> list[Any]:
        self.calls.append({"table": table, "params": dict(params or {}), "cache_ttl_s": cache_ttl_s, "refresh": refresh})
        return self.rows


def test_fetch_and_write_communities(tmp_path: Path, monkeypatch) -> None:
    settings = {
        "paths": {"cache_dir": str(tmp_path / "cache"), "raw_dir": str(tmp_path / "raw")},
        "backend": {"communities_table": "comunidades", "projects_relation": "projetos", "cache_ttl_s": 60},
        "locator": {"boundary_radius_km": 2.0},
    }
    fake = _FakeBackendClient(
        [
            {
                "id": "uuid-1",
                "cidade": "São Paulo",
                "estado": "SP",
                "bairro": "Heliópolis",
                "idh": 0.478,
                "total_beneficiarios": 510,
                "latitude": "-23.6083",
                "longitude": "-46.5937",
                "projetos": [{"id": "p1"}, {"id": "p2"}],
            },
            {
                "id": "uuid-2",
                "cidade": "Recife",
                "estado": "PE",
                "bairro": "Coque",
                "idh": None,
                "total_beneficiarios": None,
                "latitude": -8.07,
                "longitude": -34.89,
                "projetos": [],
            },
            # Malformed rows are skipped.
            {"cidade": "Nowhere"},
            "not a row",
        ]
    )

    def _fake_from_env(*, settings: dict[str, Any], cache) -> _FakeBackendClient:  # noqa: ANN001
        return fake

    monkeypatch.setattr(fetch_communities.BackendClient, "from_env", _fake_from_env)

    out_path = fetch_communities.fetch_and_write_communities(settings)

    assert out_path == tmp_path / "raw" / "backend" / "communities.csv"
    df = pd.read_csv(out_path, dtype={"id": str})
    assert list(df["id"]) == ["uuid-1", "uuid-2"]
    assert list(df.columns) == ["id", "city", "state", "neighborhood", "hdi", "beneficiaries", "lat", "lon", "project_count"]
    assert df.loc[0, "lat"] == -23.6083
    assert df.loc[0, "project_count"] == 2
    assert df.loc[1, "hdi"] == 0

    call = fake.calls[0]
    assert call["table"] == "comunidades"
    assert call["params"]["select"] == "*,projetos(id)"
    assert call["params"]["latitude"] == "not.is.null"
    assert call["cache_ttl_s"] == 60

    meta = json.loads((out_path.parent / "communities.meta.json").read_text(encoding="utf-8"))
    assert meta["total"] == 2
    assert meta["skipped"] == 2
    assert meta["projects_total"] == 2
    assert meta["by_city"] == {"Recife": 1, "São Paulo": 1}
