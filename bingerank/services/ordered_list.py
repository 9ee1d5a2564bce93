"""In-memory owner of a user's ranked sequence and want-to-watch sequence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..errors import RankingError, RankingValidationError
from ..models import RankedShow, Show
from ..utils import normalize_title
from .rating import with_derived_ratings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Outcome:
    """Result of a list mutation.

    ``changed`` is ``False`` for no-ops and rejections alike; ``error`` is set
    only when the request was rejected.
    """

    changed: bool
    error: RankingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def applied(cls) -> "Outcome":
        return cls(changed=True)

    @classmethod
    def unchanged(cls) -> "Outcome":
        return cls(changed=False)

    @classmethod
    def rejected(cls, message: str) -> "Outcome":
        return cls(changed=False, error=RankingValidationError(message))


class OrderedList:
    """Ranked shows (most preferred first) plus the unranked wish list."""

    def __init__(
        self,
        shows: Iterable[Show] | None = None,
        wish: Iterable[Show] | None = None,
    ) -> None:
        self.shows: list[Show] = list(shows or [])
        self.wish: list[Show] = list(wish or [])

    def __len__(self) -> int:
        return len(self.shows)

    def ranked(self) -> list[RankedShow]:
        """Return the ranked list with a rating attached to each entry."""

        return with_derived_ratings(self.shows)

    def title_exists(self, title: str) -> bool:
        key = normalize_title(title)
        if not key:
            return False
        return any(show.title_key == key for show in self.shows)

    def find_collision(self, show: Show) -> Show | None:
        for existing in self.shows:
            if existing.id != show.id and show.collides_with(existing):
                return existing
        return None

    def insert_first(self, show: Show) -> Outcome:
        """Seed an empty list with its first show."""

        if not show.title_key:
            return Outcome.rejected("Enter a show title to rank it.")
        if self.shows:
            return Outcome.rejected(
                "The list already has shows; use a comparison session instead."
            )
        return self.insert_at(show, 0)

    def insert_at(self, show: Show, index: int) -> Outcome:
        """Splice ``show`` in at ``index`` (``0 <= index <= len``)."""

        if not show.title_key:
            return Outcome.rejected("Enter a show title to rank it.")
        if index < 0 or index > len(self.shows):
            return Outcome.rejected(f"Insert position {index} is out of range.")
        collision = self.find_collision(show)
        if collision is not None:
            return Outcome.rejected(f"{collision.title!r} is already ranked.")

        self.shows.insert(index, show)
        self._drop_from_wish(show)
        logger.debug("Inserted %s at position %s", show.title, index)
        return Outcome.applied()

    def remove_by_external_id(self, external_id: int) -> Outcome:
        remaining = [show for show in self.shows if show.external_id != external_id]
        if len(remaining) == len(self.shows):
            return Outcome.unchanged()
        self.shows = remaining
        return Outcome.applied()

    def reorder(self, from_index: int, to_index: int) -> Outcome:
        """Move one show, keeping every other show in its relative order."""

        size = len(self.shows)
        if (
            from_index < 0
            or to_index < 0
            or from_index >= size
            or to_index >= size
            or from_index == to_index
        ):
            return Outcome.unchanged()

        moved = self.shows.pop(from_index)
        self.shows.insert(to_index, moved)
        return Outcome.applied()

    def add_wish(self, show: Show) -> Outcome:
        """Bookmark ``show`` for later without ranking it."""

        if not show.title_key:
            return Outcome.rejected("Enter a show title to save it.")
        if self.title_exists(show.title) or (
            show.external_id is not None
            and any(ranked.external_id == show.external_id for ranked in self.shows)
        ):
            return Outcome.rejected("That show is already ranked, no need to save it.")

        if show.external_id is not None:
            exists = any(item.external_id == show.external_id for item in self.wish)
        else:
            exists = any(item.title_key == show.title_key for item in self.wish)
        if exists:
            return Outcome.rejected("That show is already in your Want to Watch list.")

        self.wish.append(show)
        return Outcome.applied()

    def remove_wish_by_external_id(self, external_id: int) -> Outcome:
        remaining = [item for item in self.wish if item.external_id != external_id]
        if len(remaining) == len(self.wish):
            return Outcome.unchanged()
        self.wish = remaining
        return Outcome.applied()

    def remove_wish_by_title(self, title: str) -> Outcome:
        key = normalize_title(title)
        if not key:
            return Outcome.unchanged()
        remaining = [item for item in self.wish if item.title_key != key]
        if len(remaining) == len(self.wish):
            return Outcome.unchanged()
        self.wish = remaining
        return Outcome.applied()

    def _drop_from_wish(self, show: Show) -> None:
        if show.external_id is not None:
            self.remove_wish_by_external_id(show.external_id)
        self.remove_wish_by_title(show.title)
