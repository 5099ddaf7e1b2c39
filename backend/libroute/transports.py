from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType

from .models import Tile


def _stairs(x: int, y: int, low: int, high: int) -> tuple[Tile, Tile]:
    return (Tile(x, y, low), Tile(x, y, high))


# Staircases of the library; each pair links the same (x, y) on two levels.
LIBRARY_TRANSPORT_PAIRS: tuple[tuple[Tile, Tile], ...] = (
    # centre staircase, ground <-> middle <-> top
    _stairs(1633, 3808, 0, 1),
    _stairs(1632, 3808, 0, 1),
    _stairs(1633, 3807, 0, 1),
    _stairs(1632, 3807, 0, 1),
    _stairs(1633, 3808, 1, 2),
    _stairs(1632, 3808, 1, 2),
    _stairs(1633, 3807, 1, 2),
    _stairs(1632, 3807, 1, 2),
    # north-west reading rooms
    _stairs(1616, 3825, 0, 1),
    _stairs(1617, 3825, 0, 1),
    _stairs(1616, 3825, 1, 2),
    _stairs(1617, 3825, 1, 2),
    # south-west wing
    _stairs(1616, 3792, 0, 1),
    _stairs(1617, 3792, 0, 1),
    _stairs(1616, 3792, 1, 2),
    _stairs(1617, 3792, 1, 2),
    # north-east customer area
    _stairs(1649, 3825, 0, 1),
    _stairs(1650, 3825, 0, 1),
    _stairs(1649, 3825, 1, 2),
    _stairs(1650, 3825, 1, 2),
)


class TransportGraph:
    """Immutable table of non-adjacent one-hop connections between tiles."""

    def __init__(self, edges: Mapping[Tile, tuple[Tile, ...]]) -> None:
        self._edges: Mapping[Tile, tuple[Tile, ...]] = MappingProxyType(
            {src: tuple(dsts) for src, dsts in edges.items() if dsts}
        )

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[Tile, Tile]]) -> TransportGraph:
        edges_mut: dict[Tile, list[Tile]] = {}
        for a, b in pairs:
            if a == b:
                raise ValueError(f"transport cannot connect a tile to itself: {a}")
            for src, dst in ((a, b), (b, a)):
                out = edges_mut.setdefault(src, [])
                if dst not in out:
                    out.append(dst)
        return cls({src: tuple(dsts) for src, dsts in edges_mut.items()})

    @classmethod
    def empty(cls) -> TransportGraph:
        return cls({})

    def edges_from(self, tile: Tile) -> tuple[Tile, ...]:
        return self._edges.get(tile, ())

    def is_symmetric(self) -> bool:
        return all(src in self._edges.get(dst, ()) for src, dsts in self._edges.items() for dst in dsts)

    def __len__(self) -> int:
        return sum(len(dsts) for dsts in self._edges.values())


@lru_cache(maxsize=1)
def library_transports() -> TransportGraph:
    return TransportGraph.from_pairs(LIBRARY_TRANSPORT_PAIRS)
