from __future__ import annotations

import zipfile
from collections.abc import Callable, Iterable
from pathlib import Path

import numpy as np
import pytest

from libroute.collision_map import MOVEMENTS, CollisionMap, encode_region


def build_flags(
    width: int,
    height: int,
    *,
    levels: int = 1,
    blocked: Iterable[tuple[int, ...]] = (),
    region_size: int = 8,
) -> np.ndarray:
    """Flag grid for region (0, 0) where every open tile may step to each open neighbour.

    ``blocked`` accepts ``(x, y)`` (all levels) or ``(x, y, level)`` entries.
    Corner checks are left to the pathfinder.
    """
    closed: set[tuple[int, int, int]] = set()
    for item in blocked:
        if len(item) == 2:
            closed.update((item[0], item[1], level) for level in range(levels))
        else:
            closed.add((item[0], item[1], item[2]))

    def is_open(x: int, y: int, level: int) -> bool:
        return 0 <= x < width and 0 <= y < height and (x, y, level) not in closed

    flags = np.zeros((levels, region_size, region_size), dtype=np.uint8)
    for level in range(levels):
        for y in range(height):
            for x in range(width):
                if not is_open(x, y, level):
                    continue
                value = 0
                for move in MOVEMENTS:
                    if is_open(x + move.dx, y + move.dy, level):
                        value |= move.bit
                flags[level, y, x] = value
    return flags


def build_grid_map(
    width: int,
    height: int,
    *,
    levels: int = 1,
    blocked: Iterable[tuple[int, ...]] = (),
    region_size: int = 8,
) -> CollisionMap:
    flags = build_flags(width, height, levels=levels, blocked=blocked, region_size=region_size)
    return CollisionMap(region_size, {(0, 0): encode_region(flags)})


def write_archive(path: Path, entries: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return path


@pytest.fixture
def make_grid_map() -> Callable[..., CollisionMap]:
    return build_grid_map


@pytest.fixture
def open_grid() -> CollisionMap:
    return build_grid_map(5, 5)
