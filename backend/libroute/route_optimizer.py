from __future__ import annotations

from collections.abc import Sequence

import numpy as np

DEFAULT_EXACT_MAX_NODES = 13

_INF = np.iinfo(np.int64).max // 4

DistanceMatrix = Sequence[Sequence[int]] | np.ndarray


def _as_matrix(distances: DistanceMatrix) -> np.ndarray:
    matrix = np.asarray(distances, dtype=np.int64)
    if matrix.size == 0:
        return matrix.reshape(0, 0)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"distance matrix must be square, got shape {matrix.shape}")
    if int(matrix.min()) < 0:
        raise ValueError("distance matrix must be non-negative")
    return matrix


def solve_held_karp(distances: DistanceMatrix) -> list[int]:
    """Exact open-path ordering of nodes 1..N-1 starting from node 0.

    ``dp[mask][last]`` holds the cheapest way to visit exactly ``mask`` (always
    including the start bit) and stand on ``last``. No return leg is added.
    Ties resolve towards the lowest node index.
    """
    matrix = _as_matrix(distances)
    n = int(matrix.shape[0])
    if n <= 1:
        return []
    if n == 2:
        return [1]

    full = (1 << n) - 1
    dp = np.full((1 << n, n), _INF, dtype=np.int64)
    parent = np.full((1 << n, n), -1, dtype=np.int8)
    dp[1, 0] = 0
    columns = np.arange(n)

    # Odd masks only: every reachable state contains the start node.
    for mask in range(1, full + 1, 2):
        row = dp[mask]
        if int(row.min()) >= _INF:
            continue
        candidates = row[:, None] + matrix
        best_last = candidates.argmin(axis=0)
        best_cost = candidates[best_last, columns]
        for nxt in range(1, n):
            bit = 1 << nxt
            if mask & bit:
                continue
            new_mask = mask | bit
            cost = best_cost[nxt]
            if cost < dp[new_mask, nxt]:
                dp[new_mask, nxt] = cost
                parent[new_mask, nxt] = best_last[nxt]

    best_end = int(dp[full, 1:].argmin()) + 1
    order: list[int] = []
    mask, current = full, best_end
    while current != 0:
        order.append(current)
        previous = int(parent[mask, current])
        mask ^= 1 << current
        current = previous
    order.reverse()
    return order


def solve_nearest_neighbor(distances: DistanceMatrix) -> list[int]:
    matrix = _as_matrix(distances).tolist()
    n = len(matrix)
    if n <= 1:
        return []
    visited = [False] * n
    visited[0] = True
    current = 0
    order: list[int] = []
    for _ in range(1, n):
        nearest = -1
        nearest_dist = 0
        for nxt in range(1, n):
            if visited[nxt]:
                continue
            if nearest < 0 or matrix[current][nxt] < nearest_dist:
                nearest = nxt
                nearest_dist = matrix[current][nxt]
        visited[nearest] = True
        order.append(nearest)
        current = nearest
    return order


_SOLVERS = {
    "held_karp": solve_held_karp,
    "nearest_neighbor": solve_nearest_neighbor,
}


def select_solver(node_count: int, *, exact_max_nodes: int = DEFAULT_EXACT_MAX_NODES) -> str:
    """Name of the solver used for ``node_count`` nodes (start included)."""
    return "held_karp" if int(node_count) <= max(2, int(exact_max_nodes)) else "nearest_neighbor"


def solve_route_order(distances: DistanceMatrix, *, exact_max_nodes: int = DEFAULT_EXACT_MAX_NODES) -> list[int]:
    matrix = _as_matrix(distances)
    solver = _SOLVERS[select_solver(matrix.shape[0], exact_max_nodes=exact_max_nodes)]
    return solver(matrix)


def route_cost(distances: DistanceMatrix, order: Sequence[int]) -> int:
    matrix = _as_matrix(distances)
    total = 0
    current = 0
    for nxt in order:
        total += int(matrix[current, nxt])
        current = int(nxt)
    return total
