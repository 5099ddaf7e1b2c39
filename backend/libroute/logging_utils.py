from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from .settings import settings

LOGGER_NAME = "library_router"
LOG_FILE_NAME = "router.log.jsonl"


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _formatter() -> JsonFormatter:
    return JsonFormatter(
        "{asctime}{levelname}{message}",
        style="{",
        rename_fields={"asctime": "ts", "levelname": "level"},
    )


def _file_handler(out_dir: str) -> logging.Handler | None:
    # A read-only checkout still gets stream logging.
    try:
        log_dir = Path(out_dir) / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    except OSError:
        return None


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger

    logger.setLevel(_parse_level(settings.log_level))
    logger.propagate = False

    formatter = _formatter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    fh = _file_handler(settings.out_dir)
    if fh is not None:
        handlers.append(fh)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def _field_value(value: Any) -> Any:
    """Tiles and tile tuples are logged as ``[x, y, level]`` lists."""
    as_list = getattr(value, "as_list", None)
    if callable(as_list):
        return as_list()
    if isinstance(value, tuple):
        return [_field_value(item) for item in value]
    return value


LOGGER: logging.Logger | None = None


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    global LOGGER
    if LOGGER is None:
        LOGGER = get_logger()
    LOGGER.log(level, event, extra={"event": event, **{k: _field_value(v) for k, v in fields.items()}})
