"""Derive display ratings from list position."""

from __future__ import annotations

import math
from typing import Sequence

from ..models import RankedShow, Show

MAX_RATING = 10.0
MIN_RATING = 1.0


def round1(value: float) -> float:
    """Round half up to one decimal place."""

    return math.floor(value * 10 + 0.5) / 10


def rating_for_index(index: int, total: int) -> float:
    """Return the rating for ``index`` in a list of ``total`` shows.

    The top show always scores 10.0 and, for two or more shows, the last one
    scores 1.0 with the rest spaced evenly between them.
    """

    if total <= 1:
        return MAX_RATING

    step = (MAX_RATING - MIN_RATING) / (total - 1)
    raw = MAX_RATING - index * step
    clamped = min(MAX_RATING, max(MIN_RATING, raw))
    return round1(clamped)


def with_derived_ratings(shows: Sequence[Show]) -> list[RankedShow]:
    total = len(shows)
    return [
        RankedShow(
            **show.model_dump(),
            rank=index + 1,
            rating=rating_for_index(index, total),
        )
        for index, show in enumerate(shows)
    ]
