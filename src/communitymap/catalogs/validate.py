"""
Catalog validation orchestration.

Glue between the DataFrame produced by `communitymap.catalogs.load` and the
rules in `communitymap.catalogs.validators`: runs the checks, writes JSON and
Markdown reports under `reports/`, and formats a one-line summary for the CLI.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from communitymap.catalogs.cities import build_city_coordinates
from communitymap.catalogs.validators import validate_communities_catalog
from communitymap.log import get_logger


class CatalogValidationError(ValueError):
    pass


def validate_catalogs(
    settings: dict[str, Any],
    *,
    communities: pd.DataFrame,
    write_report: bool = True,
    raise_on_error: bool = True,
) -> dict[str, Any]:
    result = validate_communities_catalog(communities, city_coordinates=build_city_coordinates(settings))

    report = {
        "ok": result.ok,
        "errors": result.errors,
        "warnings": result.warnings,
        "stats": {"communities": result.stats},
    }

    if write_report:
        reports_dir = Path(settings["paths"]["reports_dir"])
        reports_dir.mkdir(parents=True, exist_ok=True)
        # ensure_ascii=False keeps city names like "São Paulo" readable.
        (reports_dir / "catalog_validation.json").write_text(
            json.dumps(report, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        _write_markdown_report(reports_dir / "catalog_validation.md", report)

    for w in result.warnings:
        get_logger().warning("Catalog warning: %s", w)

    if result.errors and raise_on_error:
        raise CatalogValidationError("Catalog validation failed. See reports/catalog_validation.md for details.")
    return report


def _write_markdown_report(path: Path, report: dict[str, Any]) -> None:
    lines: list[str] = ["# Catalog validation", "", f"Status: {'OK' if report.get('ok') else 'FAILED'}", ""]

    errors = list(report.get("errors", []))
    warnings = list(report.get("warnings", []))
    if errors:
        lines.append("## Errors")
        lines.extend([f"- {e}" for e in errors])
        lines.append("")
    if warnings:
        lines.append("## Warnings")
        lines.extend([f"- {w}" for w in warnings])
        lines.append("")

    lines.append("## Stats")
    lines.append("```json")
    lines.append(json.dumps(report.get("stats", {}) or {}, ensure_ascii=False, indent=2))
    lines.append("```")
    lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")


def format_validation_summary(report: dict[str, Any]) -> str:
    errors = list(report.get("errors", []))
    warnings = list(report.get("warnings", []))
    if errors:
        return f"FAILED: {len(errors)} errors, {len(warnings)} warnings"
    if warnings:
        return f"OK with warnings: {len(warnings)} warnings"
    return "OK"
