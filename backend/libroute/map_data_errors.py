from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "collision_map_unavailable",
        "collision_region_name_invalid",
        "collision_region_duplicate",
        "collision_region_corrupt",
        "collision_region_truncated",
        "collision_region_size_mismatch",
    }
)


@dataclass
class MapDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def normalize_reason_code(reason_code: str, *, default: str = "collision_map_unavailable") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
