"""Utility helpers for the BingeRank service."""

from __future__ import annotations

import json
import re
import uuid
from typing import Any


YEAR_RE = re.compile(r"^\d{4}$")


def normalize_title(value: str | None) -> str:
    """Return the comparison key used for case-insensitive title matching."""

    return (value or "").strip().casefold()


def new_show_id() -> str:
    """Return a fresh local identity for a show."""

    return uuid.uuid4().hex


def year_from_date(value: Any) -> str | None:
    """Extract a four digit year from a TMDB date string such as ``2019-07-26``."""

    if not isinstance(value, str):
        return None
    year = value[:4]
    return year if YEAR_RE.match(year) else None


def normalize_genres(value: Any) -> list[str]:
    """Coerce stored genre payloads into a list of strings.

    Some databases hand JSON columns back as serialized strings, so a string
    payload is decoded before filtering.
    """

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if not isinstance(value, list):
        return []
    return [genre for genre in value if isinstance(genre, str)]
