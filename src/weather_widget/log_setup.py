"""JSON console logging for the refresh loop and the Open-Meteo client."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .redaction import sanitize_text

# Fields a caller may attach with `extra=`; each is copied onto the JSON event
# when present on the record.
CONTEXT_FIELDS = ("latitude", "longitude", "interval_ms", "fetch_seq", "fetch_reason")


class JsonConsoleFormatter(logging.Formatter):
    """One JSON object per line, with location and fetch context when supplied."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                event[field] = value
        if record.exc_info:
            event["exception"] = sanitize_text(self.formatException(record.exc_info))
        return json.dumps(event, default=str)


def setup_logger(name: str = "weather_widget", level: int | str = logging.INFO) -> logging.Logger:
    """Attach the JSON handler to the package logger once; later calls only set the level."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not any(isinstance(h.formatter, JsonConsoleFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonConsoleFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger
