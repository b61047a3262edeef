"""Structured logging helpers for the expense tracker."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Final

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
LOG_DIR: Final[Path] = Path("logs")
LOG_PATH: Final[Path] = LOG_DIR / "expense_tracker.log"
JSON_ENV_FLAG: Final[str] = "EXPENSE_TRACKER_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "EXPENSE_TRACKER_LOG_LEVEL"
ROOT_LOGGER: Final[str] = "expense_tracker"

# Request and entity attributes passed via ``extra=`` that end up in JSON logs.
_EXTRA_FIELDS: Final[tuple[str, ...]] = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "user_id",
    "expense_id",
)


class JsonLogFormatter(logging.Formatter):
    """Format log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


def _level_from(level: str | None) -> int:
    """``EXPENSE_TRACKER_LOG_LEVEL`` wins over ``level``; unknown names mean INFO."""

    name = (os.environ.get(LEVEL_ENV_FLAG) or level or DEFAULT_LEVEL).strip().upper()
    number = logging.getLevelName(name)
    return number if isinstance(number, int) else logging.INFO


def _json_requested(explicit: bool) -> bool:
    return explicit or os.environ.get(JSON_ENV_FLAG, "").strip().lower() in _TRUTHY


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _json_handler() -> logging.Handler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    handler.setFormatter(JsonLogFormatter())
    return handler


def _attach(logger: logging.Logger, marker: str, build: Callable[[], logging.Handler], level: int) -> None:
    # Handlers are tagged so repeated setup only adjusts their level.
    handler = next((h for h in logger.handlers if getattr(h, marker, False)), None)
    if handler is None:
        handler = build()
        setattr(handler, marker, True)
        logger.addHandler(handler)
    handler.setLevel(level)


def setup_logger(name: str, json_format: bool = False, level: str | None = None) -> logging.Logger:
    """Return ``name``'s logger with a console handler and, when asked, the JSON file handler."""

    resolved = _level_from(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved)
    # Records still propagate so pytest's caplog sees them.
    logger.propagate = True
    _attach(logger, "_expense_console", _console_handler, resolved)
    if _json_requested(json_format):
        _attach(logger, "_expense_json", _json_handler, resolved)
    return logger


def configure_logging(json_logs: bool = False, level: str | None = None) -> logging.Logger:
    """Configure the package root logger; child loggers inherit its handlers."""

    return setup_logger(ROOT_LOGGER, json_format=json_logs, level=level)


__all__ = ["JsonLogFormatter", "configure_logging", "setup_logger"]
