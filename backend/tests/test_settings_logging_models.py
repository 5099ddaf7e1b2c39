from __future__ import annotations

import json
import logging
import math
from pathlib import Path

import pytest
from pydantic import ValidationError

from libroute.logging_utils import _field_value, _file_handler, _formatter, _parse_level, get_logger, log_event
from libroute.map_data_errors import FROZEN_REASON_CODES, MapDataError, normalize_reason_code
from libroute.models import RouteResult, Target, Tile
from libroute.settings import Settings, settings


def test_logging_helpers_parse_levels_and_emit_event(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "out_dir", str(tmp_path))

    assert _parse_level("debug") > 0
    assert _parse_level("not_a_level") > 0

    logger1 = get_logger()
    handlers_before = len(logger1.handlers)
    logger2 = get_logger()
    assert logger1 is logger2
    assert len(logger2.handlers) == handlers_before

    log_event("unit_test_event", region="0_0", target_count=3)


def test_log_records_are_json_with_tile_fields_as_lists() -> None:
    assert _field_value(Tile(3, 4, 1)) == [3, 4, 1]
    assert _field_value((Tile(0, 0), Tile(1, 2))) == [[0, 0, 0], [1, 2, 0]]
    assert _field_value("0_0") == "0_0"

    record = logging.LogRecord("library_router", logging.INFO, __file__, 1, "route_cache_cleared", None, None)
    record.event = "route_cache_cleared"
    record.entries = 4
    payload = json.loads(_formatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["message"] == "route_cache_cleared"
    assert payload["event"] == "route_cache_cleared"
    assert payload["entries"] == 4
    assert "ts" in payload


def test_log_file_is_skipped_when_out_dir_is_unusable(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    assert _file_handler(str(blocker)) is None

    handler = _file_handler(str(tmp_path / "out"))
    assert handler is not None
    handler.close()
    assert (tmp_path / "out" / "logs" / "router.log.jsonl").exists()


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("ROUTE_EXACT_SOLVER_MAX_NODES", "10")
    monkeypatch.setenv("ROUTE_DIAGONAL_MOVES_ENABLED", "false")
    monkeypatch.setenv("LOG_LEVEL", " debug ")

    loaded = Settings()

    assert loaded.route_exact_solver_max_nodes == 10
    assert loaded.route_diagonal_moves_enabled is False
    assert loaded.log_level == "DEBUG"
    assert loaded.collision_region_size == 64


def test_settings_reject_out_of_range_values(monkeypatch) -> None:
    monkeypatch.setenv("ROUTE_EXACT_SOLVER_MAX_NODES", "40")
    with pytest.raises(ValidationError):
        Settings()


def test_map_data_error_carries_reason_code() -> None:
    err = MapDataError(reason_code="collision_region_corrupt", message="bad bytes", details={"region": [0, 0]})

    assert isinstance(err, ValueError)
    assert str(err) == "bad bytes"
    assert err.reason_code in FROZEN_REASON_CODES
    assert normalize_reason_code(" collision_region_truncated ") == "collision_region_truncated"
    assert normalize_reason_code("something_else") == "collision_map_unavailable"
    assert normalize_reason_code("", default="collision_region_corrupt") == "collision_region_corrupt"


def test_tile_helpers() -> None:
    tile = Tile.parse("10, -3, 2")

    assert tile == Tile(10, -3, 2)
    assert tile.translate(dx=1, dlevel=-1) == Tile(11, -3, 1)
    assert tile.chebyshev_distance(Tile(7, 1, 2)) == 4
    assert math.isinf(tile.chebyshev_distance(Tile(10, -3, 0)))
    assert tile.region(8) == (1, -1)
    assert tile.as_list() == [10, -3, 2]
    assert Tile(1, 9) < Tile(2, 0) < Tile(2, 0, 1)
    for bad in ("1", "1,2,3,4", "x,y"):
        with pytest.raises(ValueError):
            Tile.parse(bad)


def test_target_equality_ignores_payload_and_result_serializes() -> None:
    assert Target(Tile(1, 1), payload="a") == Target(Tile(1, 1), payload="b")

    result = RouteResult(
        order=(Target(Tile(1, 1), payload={"book": "dune"}),),
        path=(Tile(0, 0), Tile(1, 1)),
        total_distance=1,
        computed_at_utc="2026-02-23T11:22:33Z",
    )
    payload = result.as_dict()

    assert result.complete
    assert payload["order"] == [{"location": [1, 1, 0], "payload": {"book": "dune"}}]
    assert payload["path"] == [[0, 0, 0], [1, 1, 0]]
    assert payload["total_distance"] == 1
    assert payload["unreachable"] == []
    assert payload["complete"] is True
