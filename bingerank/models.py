"""Pydantic models describing shows, ranked views and comparison sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import new_show_id, normalize_genres, normalize_title


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Show(BaseModel):
    """A show the user ranked or bookmarked."""

    id: str = Field(default_factory=new_show_id)
    external_id: int | None = None
    title: str
    created_at: datetime = Field(default_factory=_utcnow)
    poster_path: str | None = None
    year: str | None = None
    overview: str = ""
    genres: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("overview", mode="before")
    @classmethod
    def _coerce_overview(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("genres", mode="before")
    @classmethod
    def _coerce_genres(cls, value: object) -> list[str]:
        return normalize_genres(value)

    @classmethod
    def create(
        cls,
        title: str,
        *,
        external_id: int | None = None,
        poster_path: str | None = None,
        year: str | None = None,
        overview: str | None = None,
        genres: Iterable[str] | None = None,
    ) -> "Show":
        """Build a brand-new show; list order stays the ranking truth."""

        return cls(
            title=title,
            external_id=external_id,
            poster_path=poster_path,
            year=year,
            overview=overview or "",
            genres=list(genres or []),
        )

    @property
    def title_key(self) -> str:
        return normalize_title(self.title)

    def collides_with(self, other: "Show") -> bool:
        """Return ``True`` when both shows would claim the same list slot."""

        if self.title_key and self.title_key == other.title_key:
            return True
        return self.external_id is not None and self.external_id == other.external_id


class RankedShow(Show):
    """Display view of a ranked show with its position-derived rating."""

    rank: int
    rating: float


class Preference(str, Enum):
    """Answer to a single comparison between the new show and a probe."""

    PREFER_NEW = "new"
    PREFER_EXISTING = "existing"


class ComparisonSession(BaseModel):
    """Immutable snapshot of an in-progress binary insertion.

    ``low`` is inclusive and ``high`` exclusive. ``list_size`` records the
    ranked list length when the session started so stale sessions can be
    detected before they insert.
    """

    model_config = ConfigDict(frozen=True)

    new_show: Show
    low: int = Field(ge=0)
    high: int = Field(ge=0)
    compare_index: int = Field(ge=0)
    skipped: frozenset[int] = Field(default_factory=frozenset)
    skip_count: int = Field(default=0, ge=0)
    list_size: int = Field(ge=1)
