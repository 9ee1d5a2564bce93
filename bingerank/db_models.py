"""SQLAlchemy ORM models backing the remote copy of each user's lists."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShowRecord(Base):
    """Descriptive metadata for a catalog show, scoped to one user."""

    __tablename__ = "shows"
    __table_args__ = (
        UniqueConstraint("user_id", "tmdb_id", name="uq_show_user_tmdb"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    tmdb_id: Mapped[int] = mapped_column(Integer)
    local_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(String(255))
    poster_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    year: Mapped[str | None] = mapped_column(String(8), nullable=True)
    genres: Mapped[list[str]] = mapped_column(JSON, default=list)
    overview: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )


class RankedShowRecord(Base):
    """One position in a user's ranked list."""

    __tablename__ = "ranked_shows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    tmdb_id: Mapped[int] = mapped_column(Integer)
    rank_position: Mapped[int] = mapped_column(Integer)


class WantToWatchRecord(Base):
    """One bookmark in a user's want-to-watch list."""

    __tablename__ = "want_to_watch"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    tmdb_id: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
