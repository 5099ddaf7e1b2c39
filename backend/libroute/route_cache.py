from __future__ import annotations

from collections.abc import Callable
from threading import Lock

from .models import Tile

PairKey = tuple[Tile, Tile]

_MISSING = object()


def pair_key(a: Tile, b: Tile) -> PairKey:
    return (a, b) if a <= b else (b, a)


class RouteCacheStore:
    """Tile-pair memo for walking distances and paths.

    Distances and paths are direction-symmetric, so each pair is stored once
    under its canonical key. Paths are kept oriented from the key's first tile
    and reversed on read when asked for the other direction. Values are
    computed outside the lock; a concurrent duplicate computation simply
    overwrites an identical value.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._distances: dict[PairKey, int | None] = {}
        self._paths: dict[PairKey, tuple[Tile, ...] | None] = {}

        self._hits = 0
        self._misses = 0

    def _lookup(self, table: dict, key: PairKey) -> object:
        with self._lock:
            value = table.get(key, _MISSING)
            if value is _MISSING:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def get_or_compute_distance(self, a: Tile, b: Tile, compute: Callable[[], int | None]) -> int | None:
        key = pair_key(a, b)
        cached = self._lookup(self._distances, key)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]
        value = compute()
        with self._lock:
            self._distances[key] = value
        return value

    def get_or_compute_path(
        self,
        a: Tile,
        b: Tile,
        compute: Callable[[], tuple[Tile, ...] | None],
    ) -> tuple[Tile, ...] | None:
        key = pair_key(a, b)
        flipped = key[0] != a
        cached = self._lookup(self._paths, key)
        if cached is _MISSING:
            value = compute()
            if value is not None:
                value = tuple(value)
            with self._lock:
                self._paths[key] = value[::-1] if (value is not None and flipped) else value
            return value
        if cached is None:
            return None
        return cached[::-1] if flipped else cached  # type: ignore[index]

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._distances) + len(self._paths)
            self._distances.clear()
            self._paths.clear()
            return cleared

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "distances": len(self._distances),
                "paths": len(self._paths),
                "hits": self._hits,
                "misses": self._misses,
            }
