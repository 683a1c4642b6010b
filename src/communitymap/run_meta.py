from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4


@dataclass(frozen=True)
class FileMeta:
    path: str
    exists: bool
    size_bytes: int | None
    mtime: float | None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def file_meta(path: Path) -> FileMeta:
    p = Path(path)
    if not p.exists():
        return FileMeta(path=str(p), exists=False, size_bytes=None, mtime=None)
    st = p.stat()
    return FileMeta(path=str(p), exists=True, size_bytes=int(st.st_size), mtime=float(st.st_mtime))


def json_hash(data: Any) -> str:
    raw = json.dumps(data, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def config_fingerprint(settings: dict[str, Any]) -> dict[str, Any]:
    """
    Settings that change what the map shows. Paths and credentials are left out.
    """
    meta = settings.get("_meta", {}) or {}
    backend = dict(settings.get("backend", {}) or {})
    backend.pop("base_url", None)
    return {
        "scenario": meta.get("scenario"),
        "locator": settings.get("locator", {}),
        "backend": backend,
    }


def new_run_id() -> str:
    return uuid4().hex
