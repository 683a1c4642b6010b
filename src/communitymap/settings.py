"""
Settings bootstrap for CommunityMap.

Every CLI command and API endpoint reads configuration through
`load_settings()` first. The base YAML lives in `config/default.yaml`;
a scenario file (`config/scenarios/<name>.yaml`) may override any nested
subset of it, for example a different fallback location or extra cities in
the coordinate table.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

from communitymap.log import configure_logging

# Scenario names come from CLI flags and API query strings and end up in a path.
SCENARIO_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Default locations relative to the project root; `project.<key>` overrides them.
RUNTIME_DIRS: dict[str, str] = {
    "catalogs_dir": "data/catalogs",
    "raw_dir": "data/raw",
    "processed_dir": "data/processed",
    "cache_dir": "cache",
    "logs_dir": "logs",
    "reports_dir": "reports",
}


class InvalidScenarioError(ValueError):
    pass


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; `override` wins, neither input is mutated."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML must be a mapping: {path}")
    return data


def _load_dotenv_if_present(dotenv_path: Path) -> None:
    # Real environment variables win over `.env`.
    if not dotenv_path.exists():
        return
    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


def _resolve_project_root(config_path: Path) -> Path:
    config_dir = config_path.resolve().parent
    return config_dir.parent if config_dir.name == "config" else config_dir


def scenario_file(root: Path, scenario: str) -> Path:
    if not SCENARIO_NAME_RE.match(scenario or ""):
        raise InvalidScenarioError(f"Invalid scenario name: {scenario!r}")
    return root / "config" / "scenarios" / f"{scenario}.yaml"


def runtime_paths(root: Path, project: dict[str, Any]) -> dict[str, Path]:
    """Resolve runtime directories from `project.*` overrides and create them."""
    paths = {"root": root}
    for key, default in RUNTIME_DIRS.items():
        path = root / project.get(key, default)
        path.mkdir(parents=True, exist_ok=True)
        paths[key] = path
    return paths


def load_settings(config_path: Path, scenario: str) -> dict[str, Any]:
    """
    Load base config and merge a scenario override file if present.
    Also initializes runtime directories and logging.

    Raises `InvalidScenarioError` for scenario names that are not a plain
    `[A-Za-z0-9_-]+` token, so a name can never point outside
    `config/scenarios/`.
    """
    config_path = config_path.resolve()
    root = _resolve_project_root(config_path)
    scenario_path = scenario_file(root, scenario)

    # Backend credentials come from `.env`, so load it before anything reads the environment.
    _load_dotenv_if_present(root / ".env")

    settings = deep_merge(_load_yaml(config_path), _load_yaml(scenario_path))
    project = settings.setdefault("project", {})
    paths = runtime_paths(root, project)

    logger = configure_logging(paths["logs_dir"], level=project.get("log_level", "INFO"))

    settings["_meta"] = {
        "config_path": str(config_path),
        "scenario": scenario,
        "scenario_path": str(scenario_path),
    }
    # Strings keep settings JSON-serializable for the /health endpoint and meta files.
    settings["paths"] = {k: str(v) for k, v in paths.items()}
    logger.info("Loaded settings: config=%s scenario=%s", config_path, scenario)
    return settings
