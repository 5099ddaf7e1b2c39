from __future__ import annotations

import re
import zipfile
import zlib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import MappingProxyType

import numpy as np

from .logging_utils import log_event
from .map_data_errors import MapDataError, normalize_reason_code
from .models import Tile

MAX_LEVELS = 4

FLAG_NORTH = 1 << 0
FLAG_SOUTH = 1 << 1
FLAG_EAST = 1 << 2
FLAG_WEST = 1 << 3
FLAG_NORTHEAST = 1 << 4
FLAG_NORTHWEST = 1 << 5
FLAG_SOUTHEAST = 1 << 6
FLAG_SOUTHWEST = 1 << 7


@dataclass(frozen=True)
class Movement:
    name: str
    bit: int
    dx: int
    dy: int

    @property
    def diagonal(self) -> bool:
        return self.dx != 0 and self.dy != 0


# Deterministic expansion order (cardinals first, then diagonals). North is +y.
MOVEMENTS: tuple[Movement, ...] = (
    Movement("north", FLAG_NORTH, 0, 1),
    Movement("south", FLAG_SOUTH, 0, -1),
    Movement("east", FLAG_EAST, 1, 0),
    Movement("west", FLAG_WEST, -1, 0),
    Movement("northeast", FLAG_NORTHEAST, 1, 1),
    Movement("northwest", FLAG_NORTHWEST, -1, 1),
    Movement("southeast", FLAG_SOUTHEAST, 1, -1),
    Movement("southwest", FLAG_SOUTHWEST, -1, -1),
)

_BIT_BY_DELTA: dict[tuple[int, int], int] = {(m.dx, m.dy): m.bit for m in MOVEMENTS}

_REGION_NAME_RE = re.compile(r"^(-?\d+)_(-?\d+)$")


def direction_bit(dx: int, dy: int) -> int:
    try:
        return _BIT_BY_DELTA[(dx, dy)]
    except KeyError:
        raise ValueError(f"not a unit move: ({dx}, {dy})") from None


def decode_region(payload: bytes, *, region_size: int) -> np.ndarray:
    """Expand one compressed region entry into a read-only ``uint8[levels][size][size]`` array.

    The payload is a zlib stream whose body holds one flag byte per tile,
    level-major then row-major (``(level * size + local_y) * size + local_x``).
    Any malformed input raises :class:`MapDataError`; nothing is returned partially.
    """
    decompressor = zlib.decompressobj()
    try:
        body = decompressor.decompress(bytes(payload)) + decompressor.flush()
    except zlib.error as exc:
        raise MapDataError(
            reason_code="collision_region_corrupt",
            message=f"region payload is not a valid zlib stream: {exc}",
            details={"payload_bytes": len(payload)},
        ) from exc
    if not decompressor.eof:
        raise MapDataError(
            reason_code="collision_region_truncated",
            message="region payload ends before the end of its compressed stream",
            details={"payload_bytes": len(payload), "decoded_bytes": len(body)},
        )
    if decompressor.unused_data:
        raise MapDataError(
            reason_code="collision_region_corrupt",
            message=f"region payload has {len(decompressor.unused_data)} trailing bytes",
            details={"payload_bytes": len(payload)},
        )
    level_bytes = region_size * region_size
    if not body:
        raise MapDataError(
            reason_code="collision_region_truncated",
            message="region payload decodes to an empty flag map",
            details={"payload_bytes": len(payload)},
        )
    levels, remainder = divmod(len(body), level_bytes)
    if remainder or not 1 <= levels <= MAX_LEVELS:
        raise MapDataError(
            reason_code="collision_region_size_mismatch",
            message=(
                f"region payload decodes to {len(body)} bytes, expected a multiple of "
                f"{level_bytes} covering 1..{MAX_LEVELS} levels"
            ),
            details={"decoded_bytes": len(body), "region_size": region_size},
        )
    return np.frombuffer(body, dtype=np.uint8).reshape(levels, region_size, region_size)


def encode_region(flags: np.ndarray) -> bytes:
    grid = np.asarray(flags)
    if grid.ndim != 3 or grid.shape[1] != grid.shape[2]:
        raise ValueError(f"expected a (levels, size, size) flag array, got shape {grid.shape}")
    if not 1 <= grid.shape[0] <= MAX_LEVELS:
        raise ValueError(f"level count must be within 1..{MAX_LEVELS}, got {grid.shape[0]}")
    return zlib.compress(grid.astype(np.uint8).tobytes(), 9)


def parse_region_name(name: str) -> tuple[int, int]:
    match = _REGION_NAME_RE.match(PurePosixPath(name).name)
    if match is None:
        raise MapDataError(
            reason_code="collision_region_name_invalid",
            message=f"collision map entry {name!r} is not named '<regionX>_<regionY>'",
            details={"entry": name},
        )
    return int(match.group(1)), int(match.group(2))


def load_collision_archive(path: str | Path) -> dict[tuple[int, int], bytes]:
    archive_path = Path(path)
    if not archive_path.is_file():
        raise MapDataError(
            reason_code="collision_map_unavailable",
            message=f"collision map archive not found: {archive_path}",
            details={"path": str(archive_path)},
        )
    regions: dict[tuple[int, int], bytes] = {}
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                key = parse_region_name(info.filename)
                if key in regions:
                    raise MapDataError(
                        reason_code="collision_region_duplicate",
                        message=f"collision map archive lists region {key[0]}_{key[1]} twice",
                        details={"entry": info.filename},
                    )
                regions[key] = archive.read(info)
    except (zipfile.BadZipFile, zlib.error, OSError) as exc:
        raise MapDataError(
            reason_code="collision_map_unavailable",
            message=f"collision map archive is unreadable: {type(exc).__name__}: {exc}",
            details={"path": str(archive_path)},
        ) from exc
    return regions


class CollisionMap:
    """Per-tile movement flags for a bounded set of square regions.

    Regions are decoded once at construction and never mutated; lookups outside
    any loaded region (or above its highest level) report a fully blocked tile.
    """

    def __init__(self, region_size: int, regions: Mapping[tuple[int, int], bytes]) -> None:
        if int(region_size) <= 0:
            raise ValueError("region_size must be positive")
        self._region_size = int(region_size)
        decoded: dict[tuple[int, int], np.ndarray] = {}
        for key in sorted(regions):
            try:
                decoded[key] = decode_region(regions[key], region_size=self._region_size)
            except MapDataError as exc:
                raise MapDataError(
                    reason_code=normalize_reason_code(exc.reason_code),
                    message=f"region {key[0]}_{key[1]}: {exc.message}",
                    details={**(exc.details or {}), "region": [key[0], key[1]]},
                ) from exc
        self._regions: Mapping[tuple[int, int], np.ndarray] = MappingProxyType(decoded)

    @classmethod
    def from_archive(cls, path: str | Path, *, region_size: int) -> CollisionMap:
        collision_map = cls(region_size, load_collision_archive(path))
        log_event(
            "collision_map_loaded",
            path=str(path),
            region_size=int(region_size),
            region_count=len(collision_map.region_keys),
            walkable_tiles=collision_map.walkable_tile_count(),
        )
        return collision_map

    @property
    def region_size(self) -> int:
        return self._region_size

    @property
    def region_keys(self) -> tuple[tuple[int, int], ...]:
        return tuple(self._regions)

    def level_count(self, region: tuple[int, int]) -> int:
        grid = self._regions.get(region)
        return 0 if grid is None else int(grid.shape[0])

    def region_flags(self, region: tuple[int, int]) -> np.ndarray | None:
        return self._regions.get(region)

    def flags(self, tile: Tile) -> int:
        rx, ry = tile.region(self._region_size)
        grid = self._regions.get((rx, ry))
        if grid is None or not 0 <= tile.level < grid.shape[0]:
            return 0
        return int(grid[tile.level, tile.y - ry * self._region_size, tile.x - rx * self._region_size])

    def can_move(self, tile: Tile, dx: int, dy: int) -> bool:
        return bool(self.flags(tile) & direction_bit(dx, dy))

    def walkable_tile_count(self) -> int:
        return int(sum(np.count_nonzero(grid) for grid in self._regions.values()))
