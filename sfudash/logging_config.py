"""Root logger setup for the dashboard backend.

Output is chosen per process from two environment variables, read when
:func:`setup_logging` runs rather than through ``settings`` so tests can
flip them with ``monkeypatch``:

    SFUDASH_LOG_FORMAT  ``json`` for one JSON object per line, else plain text.
    SFUDASH_LOG_LEVEL   level name; unknown names mean ``INFO``.
"""

from __future__ import annotations

import logging
import os
import traceback
from typing import Any

from pythonjsonlogger.json import JsonFormatter

# Attributes the request middleware and the bus attach via ``extra=``.
_CONTEXT_FIELDS = (
    "request_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "topic",
    "event_type",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _env_format() -> str:
    return os.environ.get("SFUDASH_LOG_FORMAT", "text").strip().lower()


def _env_level() -> int:
    level = logging.getLevelName(os.environ.get("SFUDASH_LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


class StructuredJsonFormatter(JsonFormatter):
    """JSON lines with request/fan-out context and a list-valued ``traceback``."""

    def __init__(self) -> None:
        super().__init__(fmt=_JSON_FIELDS, datefmt="%Y-%m-%dT%H:%M:%S")

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        # Replace the flattened exc_info text with the frame list.
        log_record.pop("exc_info", None)
        if record.exc_info and record.exc_info[1] is not None:
            log_record["traceback"] = traceback.format_exception(*record.exc_info)


def setup_logging() -> None:
    """Install a single stderr handler on the root logger."""
    level = _env_level()
    handler = logging.StreamHandler()
    handler.setLevel(level)
    if _env_format() == "json":
        handler.setFormatter(StructuredJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_startup_info() -> None:
    import sfudash
    from sfudash.config import settings

    logging.getLogger("sfudash").info(
        "SFU dashboard backend started",
        extra={
            "version": sfudash.__version__,
            "sora_api_url": settings.sora_api_url,
            "rate_limit_config": settings.rate_limit,
            "heartbeat_interval": settings.heartbeat_interval,
        },
    )
