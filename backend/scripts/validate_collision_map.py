from __future__ import annotations

# ruff: noqa: E402
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from libroute.collision_map import decode_region, load_collision_archive
from libroute.map_data_errors import MapDataError, normalize_reason_code
from libroute.settings import settings


def _region_summary(key: tuple[int, int], flags: np.ndarray) -> dict[str, Any]:
    return {
        "region": f"{key[0]}_{key[1]}",
        "levels": int(flags.shape[0]),
        "walkable_tiles": [int(np.count_nonzero(level)) for level in flags],
    }


def validate(*, archive_path: Path, region_size: int) -> dict[str, Any]:
    report: dict[str, Any] = {"path": str(archive_path), "region_size": int(region_size)}
    try:
        regions = load_collision_archive(archive_path)
    except MapDataError as exc:
        error = {"reason_code": normalize_reason_code(exc.reason_code), "message": exc.message}
        report.update(ok=False, regions=[], errors=[error])
        return report

    summaries: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    for key in sorted(regions):
        try:
            flags = decode_region(regions[key], region_size=region_size)
        except MapDataError as exc:
            errors.append(
                {
                    "region": f"{key[0]}_{key[1]}",
                    "reason_code": normalize_reason_code(exc.reason_code),
                    "message": exc.message,
                }
            )
            continue
        summaries.append(_region_summary(key, flags))
    report.update(ok=not errors and bool(summaries), regions=summaries, errors=errors)
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Decode every region of a collision map archive.")
    parser.add_argument("--collision-map", type=Path, default=Path(settings.collision_map_path))
    parser.add_argument("--region-size", type=int, default=settings.collision_region_size)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    report = validate(archive_path=args.collision_map, region_size=max(1, int(args.region_size)))
    print(json.dumps(report, indent=2))
    return 0 if report["ok"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
