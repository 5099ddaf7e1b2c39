from __future__ import annotations

# ruff: noqa: E402
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from libroute.collision_map import CollisionMap
from libroute.models import Target, Tile
from libroute.route_service import RouteComputationService
from libroute.settings import settings
from libroute.transports import TransportGraph, library_transports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plan the shortest walk through a set of library targets.")
    parser.add_argument("--collision-map", default=settings.collision_map_path, help="Collision map zip archive.")
    parser.add_argument("--region-size", type=int, default=settings.collision_region_size)
    parser.add_argument("--start", required=True, type=Tile.parse, help="Start tile as x,y[,level].")
    parser.add_argument(
        "--target",
        dest="targets",
        action="append",
        type=Tile.parse,
        default=[],
        help="Target tile as x,y[,level]; repeat for each target.",
    )
    parser.add_argument("--no-transports", action="store_true", help="Ignore the built-in staircases.")
    parser.add_argument("--timeout-s", type=float, default=120.0)
    parser.add_argument("--out-json", default=None, help="Also write the result payload to this path.")
    return parser


def run_plan(args: argparse.Namespace) -> dict[str, Any]:
    if not args.targets:
        raise ValueError("at least one --target is required")
    collision_map = CollisionMap.from_archive(args.collision_map, region_size=int(args.region_size))
    transports = TransportGraph.empty() if args.no_transports else library_transports()
    service = RouteComputationService(collision_map, transports)
    try:
        targets = [Target(location=tile, payload=idx) for idx, tile in enumerate(args.targets)]
        if not service.request_compute(args.start, targets):
            raise RuntimeError("route computation was not accepted")
        if not service.wait(timeout=float(args.timeout_s)):
            raise TimeoutError(f"route computation did not finish within {args.timeout_s}s")
        result = service.get_result()
        if result is None:
            raise RuntimeError(f"route computation failed: {service.status().get('last_error')}")
        payload = result.as_dict()
    finally:
        service.shutdown()

    if args.out_json:
        out_path = Path(args.out_json)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return payload


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    payload = run_plan(args)
    print(json.dumps(payload, indent=2))
    return 0 if payload["complete"] else 2


if __name__ == "__main__":
    raise SystemExit(main())
