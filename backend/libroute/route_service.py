from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

import numpy as np

from .collision_map import CollisionMap
from .logging_utils import log_event
from .models import RouteResult, Target, Tile
from .pathfinder import GridPathfinder
from .route_cache import RouteCacheStore
from .route_optimizer import select_solver, solve_route_order
from .settings import settings
from .transports import TransportGraph, library_transports


def _iso_utc_now() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class RouteComputationService:
    """Single-flight planner for the cheapest walk through a set of targets.

    ``request_compute`` hands the job to a one-worker executor and returns
    immediately. Readers always see the last fully published ``RouteResult``;
    a new result replaces the old one in a single assignment.
    """

    def __init__(
        self,
        collision_map: CollisionMap,
        transports: TransportGraph,
        *,
        cache: RouteCacheStore | None = None,
        unreachable_distance: int | None = None,
        exact_max_nodes: int | None = None,
        diagonal_moves: bool | None = None,
    ) -> None:
        if diagonal_moves is None:
            diagonal_moves = settings.route_diagonal_moves_enabled
        self._pathfinder = GridPathfinder(collision_map, transports, diagonal_moves=diagonal_moves)
        self._cache = cache if cache is not None else RouteCacheStore()
        self._unreachable_distance = int(
            settings.route_unreachable_distance if unreachable_distance is None else unreachable_distance
        )
        self._exact_max_nodes = int(
            settings.route_exact_solver_max_nodes if exact_max_nodes is None else exact_max_nodes
        )

        self._lock = threading.Lock()
        self._state = "idle"  # idle | running
        self._generation = 0
        self._future: Future[None] | None = None
        self._result: RouteResult | None = None
        self._last_error: str | None = None
        self._last_duration_ms: float | None = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="route-compute")

    # ------------------------------------------------------------------ requests

    def request_compute(self, position: Tile, targets: Sequence[Target]) -> bool:
        targets = tuple(targets)
        with self._lock:
            if self._state == "running" or not targets:
                return False
            self._state = "running"
            generation = self._generation
            try:
                self._future = self._executor.submit(self._compute_worker, position, targets, generation)
            except RuntimeError as exc:
                self._state = "idle"
                log_event(
                    "route_compute_rejected",
                    level=logging.WARNING,
                    reason="executor_shutdown",
                    error_message=str(exc).strip() or type(exc).__name__,
                )
                return False
        return True

    def is_computing(self) -> bool:
        with self._lock:
            return self._state == "running"

    def wait(self, timeout: float | None = None) -> bool:
        with self._lock:
            future = self._future
        if future is None:
            return True
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------ reads

    def get_result(self) -> RouteResult | None:
        return self._result

    def get_optimal_path(self) -> tuple[Tile, ...] | None:
        result = self._result
        return None if result is None else result.path

    def get_optimal_order(self) -> tuple[Target, ...] | None:
        result = self._result
        return None if result is None else result.order

    def get_next_target(self, position: Tile) -> Target | None:
        result = self._result
        if result is None:
            return None
        reach = int(settings.route_next_target_reach_tiles)
        for target in result.order:
            if position.chebyshev_distance(target.location) > reach:
                return target
        return None

    def get_path(self, start: Tile, goal: Tile) -> tuple[Tile, ...]:
        if start == goal:
            return ()
        path = self._cache.get_or_compute_path(
            start,
            goal,
            lambda: self._pathfinder.shortest_path(start, goal),
        )
        return path or ()

    def get_distance(self, start: Tile, goal: Tile) -> int | None:
        if start == goal:
            return 0
        return self._cache.get_or_compute_distance(
            start,
            goal,
            lambda: self._pathfinder.shortest_distance(start, goal),
        )

    def clear_cache(self) -> None:
        with self._lock:
            cleared = self._cache.clear()
            self._result = None
            self._generation += 1
            generation = self._generation
        log_event("route_cache_cleared", entries=cleared, generation=generation)

    def status(self) -> dict[str, Any]:
        with self._lock:
            snapshot: dict[str, Any] = {
                "state": self._state,
                "generation": self._generation,
                "has_result": self._result is not None,
                "last_error": self._last_error,
                "last_duration_ms": self._last_duration_ms,
                "exact_max_nodes": self._exact_max_nodes,
            }
        snapshot["cache"] = self._cache.snapshot()
        return snapshot

    # ------------------------------------------------------------------ worker

    def _compute_worker(self, position: Tile, targets: tuple[Target, ...], generation: int) -> None:
        started = time.monotonic()
        log_event(
            "route_compute_started",
            position=position,
            target_count=len(targets),
            generation=generation,
        )
        result: RouteResult | None = None
        solver = ""
        error: str | None = None
        published = False
        try:
            result, solver = self._compute(position, targets)
        except Exception as exc:
            error = f"{type(exc).__name__}: {str(exc).strip()}"
            log_event(
                "route_compute_failed",
                level=logging.ERROR,
                target_count=len(targets),
                generation=generation,
                error_type=type(exc).__name__,
                error_message=str(exc).strip() or type(exc).__name__,
            )
        finally:
            duration_ms = round(max(0.0, (time.monotonic() - started) * 1000.0), 2)
            with self._lock:
                if result is not None and generation == self._generation:
                    self._result = result
                    published = True
                self._last_error = error
                self._last_duration_ms = duration_ms
                self._state = "idle"
        if result is None:
            return
        if not published:
            log_event("route_compute_discarded", generation=generation, duration_ms=duration_ms)
            return
        log_event(
            "route_compute_finished",
            solver=solver,
            target_count=len(targets),
            waypoints=len(result.path),
            total_distance=result.total_distance,
            unreachable_count=len(result.unreachable),
            unreachable=tuple(target.location for target in result.unreachable),
            duration_ms=duration_ms,
        )

    def _compute(self, position: Tile, targets: tuple[Target, ...]) -> tuple[RouteResult, str]:
        locations = [position, *(target.location for target in targets)]
        n = len(locations)
        matrix = np.zeros((n, n), dtype=np.int64)
        for i in range(n):
            for j in range(i + 1, n):
                distance = self.get_distance(locations[i], locations[j])
                if distance is None:
                    distance = self._unreachable_distance
                matrix[i, j] = distance
                matrix[j, i] = distance

        solver = select_solver(n, exact_max_nodes=self._exact_max_nodes)
        order = solve_route_order(matrix, exact_max_nodes=self._exact_max_nodes)
        ordered = tuple(targets[idx - 1] for idx in order)

        path: list[Tile] = []
        unreachable: list[Target] = []
        total_distance = 0
        current = position
        # Legs always start from the last tile actually reached.
        for target in ordered:
            if current == target.location:
                continue
            segment = self.get_path(current, target.location)
            if not segment:
                unreachable.append(target)
                continue
            total_distance += len(segment) - 1
            if path and path[-1] == segment[0]:
                segment = segment[1:]
            path.extend(segment)
            current = target.location

        result = RouteResult(
            order=ordered,
            path=tuple(path),
            total_distance=total_distance,
            unreachable=tuple(unreachable),
            computed_at_utc=_iso_utc_now(),
        )
        return result, solver


@lru_cache(maxsize=1)
def load_route_service() -> RouteComputationService:
    collision_map = CollisionMap.from_archive(
        settings.collision_map_path,
        region_size=settings.collision_region_size,
    )
    return RouteComputationService(collision_map, library_transports())
