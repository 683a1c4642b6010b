"""
On-disk JSON cache for backend responses.

Each entry is one file under `<base_dir>/<namespace>/`, named by the SHA-256 of
its key and holding `{"key", "stored_at", "value"}`. Expiry uses `stored_at`,
so copying the cache directory around does not refresh entries.
"""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class DiskCache:
    base_dir: Path
    namespace: str = "backend"
    default_ttl_s: int = 60 * 60

    @property
    def directory(self) -> Path:
        return Path(self.base_dir) / self.namespace

    def path_for(self, key: str) -> Path:
        return self.directory / f"{hashlib.sha256(key.encode('utf-8')).hexdigest()}.json"

    def get(self, key: str, ttl_s: int | None = None) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        entry = json.loads(path.read_text(encoding="utf-8"))
        ttl = self.default_ttl_s if ttl_s is None else ttl_s
        # A negative TTL never expires.
        if ttl >= 0 and time.time() - float(entry.get("stored_at", 0)) > ttl:
            return None
        return entry.get("value")

    def set(self, key: str, value: Any) -> Path:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        entry = {"key": key, "stored_at": time.time(), "value": value}
        path.write_text(json.dumps(entry, ensure_ascii=False), encoding="utf-8")
        return path

    def invalidate(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True
