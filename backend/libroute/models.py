from __future__ import annotations

from dataclasses import dataclass, field
from math import inf
from typing import Any


@dataclass(frozen=True, order=True)
class Tile:
    """One map cell. Ordering is lexicographic on (x, y, level)."""

    x: int
    y: int
    level: int = 0

    def translate(self, dx: int = 0, dy: int = 0, dlevel: int = 0) -> Tile:
        return Tile(self.x + dx, self.y + dy, self.level + dlevel)

    def chebyshev_distance(self, other: Tile) -> float:
        if self.level != other.level:
            return inf
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def region(self, region_size: int) -> tuple[int, int]:
        return (self.x // region_size, self.y // region_size)

    @classmethod
    def parse(cls, raw: str) -> Tile:
        parts = [p.strip() for p in str(raw).split(",")]
        if len(parts) not in (2, 3):
            raise ValueError(f"expected 'x,y' or 'x,y,level', got {raw!r}")
        values = [int(p) for p in parts]
        return cls(*values)

    def as_list(self) -> list[int]:
        return [self.x, self.y, self.level]


@dataclass(frozen=True)
class Target:
    location: Tile
    # Opaque to the router, carried through to the published order.
    payload: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class RouteResult:
    order: tuple[Target, ...]
    path: tuple[Tile, ...]
    total_distance: int
    unreachable: tuple[Target, ...] = ()
    computed_at_utc: str = ""

    @property
    def complete(self) -> bool:
        return not self.unreachable

    def as_dict(self) -> dict[str, Any]:
        return {
            "order": [
                {"location": target.location.as_list(), "payload": target.payload}
                for target in self.order
            ],
            "path": [tile.as_list() for tile in self.path],
            "total_distance": int(self.total_distance),
            "unreachable": [target.location.as_list() for target in self.unreachable],
            "complete": self.complete,
            "computed_at_utc": self.computed_at_utc,
        }
