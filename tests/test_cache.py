import json
from pathlib import Path

from communitymap.cache import DiskCache


def test_entries_expire_by_stored_time(tmp_path: Path) -> None:
    cache = DiskCache(tmp_path, namespace="backend", default_ttl_s=60)
    path = cache.set("GET /comunidades", [{"id": "1"}])
    assert path.parent == tmp_path / "backend"
    assert cache.get("GET /comunidades") == [{"id": "1"}]

    entry = json.loads(path.read_text(encoding="utf-8"))
    entry["stored_at"] -= 120
    path.write_text(json.dumps(entry), encoding="utf-8")

    assert cache.get("GET /comunidades") is None
    assert cache.get("GET /comunidades", ttl_s=-1) == [{"id": "1"}]


def test_invalidate_and_namespaces_are_separate(tmp_path: Path) -> None:
    backend = DiskCache(tmp_path, namespace="backend")
    other = DiskCache(tmp_path, namespace="other")
    backend.set("k", 1)
    assert other.get("k") is None
    assert backend.invalidate("k") is True
    assert backend.invalidate("k") is False
    assert backend.get("k") is None
