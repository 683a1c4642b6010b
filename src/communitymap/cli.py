import argparse
import json
from pathlib import Path

from communitymap.settings import InvalidScenarioError, load_settings


def _add_position_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--lat", default=None, help="User latitude (omit to use the fallback location)")
    p.add_argument("--lon", default=None, help="User longitude (omit to use the fallback location)")


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="config/default.yaml", help="Path to config YAML")
    common.add_argument("--scenario", default="default", help="Scenario name (config/scenarios/<name>.yaml)")

    parser = argparse.ArgumentParser(prog="communitymap", description="CommunityMap CLI", parents=[common])

    sub = parser.add_subparsers(dest="command", required=True)
    fetch = sub.add_parser("fetch-communities", parents=[common], help="Snapshot communities from the hosted backend")
    fetch.add_argument("--refresh", action="store_true", help="Ignore the HTTP cache")
    sub.add_parser("validate-catalogs", parents=[common], help="Validate the community catalog and write a report")
    nearest = sub.add_parser("nearest", parents=[common], help="Print the community nearest to a position")
    _add_position_args(nearest)
    map_view = sub.add_parser("map-view", parents=[common], help="Write the map view as GeoJSON")
    _add_position_args(map_view)
    map_view.add_argument("--out", default=None, help="Output path (default: <processed_dir>/map_view.geojson)")
    sub.add_parser("api-info", parents=[common], help="Print API run instructions")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(Path(args.config), scenario=args.scenario)
    except InvalidScenarioError as e:
        parser.error(str(e))

    if args.command == "api-info":
        host = settings["api"]["host"]
        port = settings["api"]["port"]
        print(f"Run: uvicorn communitymap.api.main:app --reload --host {host} --port {port}")
        return

    if args.command == "fetch-communities":
        from communitymap.ingestion.fetch_communities import fetch_and_write_communities

        out_path = fetch_and_write_communities(settings, refresh=bool(getattr(args, "refresh", False)))
        print(out_path)
        return

    if args.command == "validate-catalogs":
        from communitymap.catalogs.load import load_communities_catalog
        from communitymap.catalogs.validate import format_validation_summary, validate_catalogs

        communities = load_communities_catalog(settings)
        report = validate_catalogs(settings, communities=communities, write_report=True, raise_on_error=False)
        print(format_validation_summary(report))
        if not report["ok"]:
            raise SystemExit(1)
        return

    if args.command == "nearest":
        from communitymap.pipeline import locate

        result = locate(settings, lat=args.lat, lon=args.lon)
        nearest = result.view.nearest
        print(
            json.dumps(
                {
                    "user_location": {"lat": result.user_location.lat, "lon": result.user_location.lon},
                    "geolocation_state": result.geolocation_state.value,
                    "nearest": nearest.to_dict() if nearest is not None else None,
                },
                ensure_ascii=False,
                indent=2,
            )
        )
        return

    if args.command == "map-view":
        from communitymap.pipeline import locate, write_map_view

        result = locate(settings, lat=args.lat, lon=args.lon)
        out = Path(args.out) if args.out else Path(settings["paths"]["processed_dir"]) / "map_view.geojson"
        write_map_view(result, out)
        print(f"{result.view.subtitle}\n{out}")
        return

    raise SystemExit(f"Unknown command: {args.command}")
