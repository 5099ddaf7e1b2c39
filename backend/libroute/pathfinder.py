from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from .collision_map import MOVEMENTS, CollisionMap, Movement, direction_bit
from .models import Tile
from .transports import TransportGraph


@dataclass(frozen=True)
class PathSearch:
    nodes: tuple[Tile, ...] | None  # None => unreachable
    explored_states: int

    @property
    def reachable(self) -> bool:
        return self.nodes is not None

    @property
    def distance(self) -> int | None:
        if self.nodes is None:
            return None
        return max(0, len(self.nodes) - 1)


class GridPathfinder:
    """Unit-cost breadth-first search over grid moves plus transport hops.

    A diagonal step is taken only when the tile allows it and both of its
    orthogonal components are open: the source can move along each axis, and
    the two tiles beside the diagonal can move onward into the destination.
    """

    def __init__(
        self,
        collision_map: CollisionMap,
        transports: TransportGraph,
        *,
        diagonal_moves: bool = True,
    ) -> None:
        self._map = collision_map
        self._transports = transports
        self._diagonal_moves = bool(diagonal_moves)

    def _diagonal_clear(self, tile: Tile, flags: int, move: Movement) -> bool:
        if not (flags & direction_bit(move.dx, 0) and flags & direction_bit(0, move.dy)):
            return False
        return self._map.can_move(tile.translate(move.dx, 0), 0, move.dy) and self._map.can_move(
            tile.translate(0, move.dy), move.dx, 0
        )

    def neighbours(self, tile: Tile) -> tuple[Tile, ...]:
        flags = self._map.flags(tile)
        out: list[Tile] = []
        for move in MOVEMENTS:
            if not flags & move.bit:
                continue
            if move.diagonal and not (self._diagonal_moves and self._diagonal_clear(tile, flags, move)):
                continue
            out.append(tile.translate(move.dx, move.dy))
        out.extend(self._transports.edges_from(tile))
        return tuple(out)

    def search(self, start: Tile, goal: Tile) -> PathSearch:
        if start == goal:
            return PathSearch(nodes=(), explored_states=0)
        previous: dict[Tile, Tile | None] = {start: None}
        frontier: deque[Tile] = deque([start])
        explored = 0
        while frontier:
            current = frontier.popleft()
            explored += 1
            for nxt in self.neighbours(current):
                if nxt in previous:
                    continue
                previous[nxt] = current
                if nxt == goal:
                    return PathSearch(nodes=_reconstruct(previous, goal), explored_states=explored)
                frontier.append(nxt)
        return PathSearch(nodes=None, explored_states=explored)

    def shortest_path(self, start: Tile, goal: Tile) -> tuple[Tile, ...] | None:
        return self.search(start, goal).nodes

    def shortest_distance(self, start: Tile, goal: Tile) -> int | None:
        return self.search(start, goal).distance


def _reconstruct(previous: dict[Tile, Tile | None], goal: Tile) -> tuple[Tile, ...]:
    nodes: list[Tile] = []
    current: Tile | None = goal
    while current is not None:
        nodes.append(current)
        current = previous[current]
    nodes.reverse()
    return tuple(nodes)
