"""Shared validation utilities"""

import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SLUG_MAX_LENGTH = 64


def slugify(value: Optional[str]) -> str:
    """
    Lower-case a free-text name into a URL slug.

    "Intro Call (30 min)" -> "intro-call-30-min"
    """
    if not value:
        return ""
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug[:SLUG_MAX_LENGTH].strip("-")


def is_valid_slug(value: Optional[str]) -> bool:
    return bool(value) and len(value) <= SLUG_MAX_LENGTH and bool(SLUG_PATTERN.match(value))


def is_valid_time_zone(name: Optional[str]) -> bool:
    """True when the IANA zone name is known to the zoneinfo database"""
    if not name:
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False
