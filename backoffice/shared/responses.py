"""Response envelope shared by every endpoint: {"data": ..., "error": ...}"""

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import PlainSerializer

from .dates import isoformat_utc

# Naive UTC datetimes rendered as "2026-01-05T14:00:00Z"
UtcDateTime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=Optional[str], when_used="json")]


def envelope(data: Any = None, error: Optional[str] = None) -> dict:
    return {"data": data, "error": error}


def error_body(error: str, **extra) -> dict:
    body = {"data": None, "error": error}
    body.update(extra)
    return body
