"""
QloudSound API - Shared Utilities

Common helpers used across multiple modules to avoid duplication.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from starlette.responses import JSONResponse

JSON_MEDIA_TYPE = "application/json; charset=utf-8"


class PrettyJSONResponse(JSONResponse):
    """JSON response rendered with two-space indentation and an explicit charset."""

    media_type = JSON_MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


def json_response(payload: Any, status_code: int = 200) -> PrettyJSONResponse:
    return PrettyJSONResponse(content=payload, status_code=status_code)


def error_response(error: str, message: str, status_code: int) -> PrettyJSONResponse:
    """Build the ``{"error": ..., "message": ...}`` body used by every failure."""
    return json_response({"error": error, "message": message}, status_code=status_code)


def utc_now_iso() -> str:
    """
    Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix.

    Every stored timestamp uses this exact shape, so comparing them as
    strings gives chronological order.
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clean_field(value: Any) -> str:
    """Trim a form field; missing or non-text values become an empty string."""
    if not isinstance(value, str):
        return ""
    return value.strip()


def optional_field(value: Any) -> Optional[str]:
    """Like :func:`clean_field` but blank values become ``None``."""
    return clean_field(value) or None
