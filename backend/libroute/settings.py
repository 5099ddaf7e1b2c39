from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep runtime artifacts in backend/out by default to avoid polluting source assets.
    return str(Path(__file__).resolve().parents[1] / "out")


def _default_collision_map_path() -> str:
    return str(Path(__file__).resolve().parent / "assets" / "collision-map.zip")


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping config out of code for easy extension."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    collision_map_path: str = Field(default_factory=_default_collision_map_path, alias="COLLISION_MAP_PATH")
    collision_region_size: int = Field(default=64, ge=8, le=256, alias="COLLISION_REGION_SIZE")

    # Held-Karp is O(N^2 * 2^N); above this node count (start + targets) the
    # nearest-neighbour heuristic is used instead.
    route_exact_solver_max_nodes: int = Field(
        default=13,
        ge=2,
        le=16,
        alias="ROUTE_EXACT_SOLVER_MAX_NODES",
    )
    route_unreachable_distance: int = Field(
        default=1 << 30,
        ge=1,
        le=1 << 40,
        alias="ROUTE_UNREACHABLE_DISTANCE",
    )
    route_diagonal_moves_enabled: bool = Field(default=True, alias="ROUTE_DIAGONAL_MOVES_ENABLED")
    route_next_target_reach_tiles: int = Field(
        default=1,
        ge=0,
        le=16,
        alias="ROUTE_NEXT_TARGET_REACH_TILES",
    )

    @model_validator(mode="after")
    def _normalize_log_level(self) -> "Settings":
        self.log_level = str(self.log_level or "INFO").strip().upper() or "INFO"
        return self


settings = Settings()
