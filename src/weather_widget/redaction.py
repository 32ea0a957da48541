"""Mask the optional Open-Meteo `apikey` before it reaches a log line."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

API_KEY_PARAM = "apikey"

# `apikey=<value>` as httpx renders it inside request URLs.
_APIKEY_QUERY_RE = re.compile(r"(?i)\b(apikey=)[^&\s'\"]+")


def sanitize_text(text: str) -> str:
    """Replace the value of any `apikey=` query parameter in `text`."""
    return _APIKEY_QUERY_RE.sub(rf"\g<1>{REDACTED}", text)


def sanitize_for_logging(params: dict[str, Any]) -> dict[str, Any]:
    """Copy of request params with the API key masked."""
    return {
        key: REDACTED if key == API_KEY_PARAM else value
        for key, value in params.items()
    }
