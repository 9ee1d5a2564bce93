"""Binary-insertion comparison sessions with skip and undo.

Sessions are immutable :class:`~bingerank.models.ComparisonSession` values.
Every transition returns either a new session (more questions needed) or an
:class:`InsertionPoint` once the position of the new show is resolved. Nothing
here touches storage; :class:`~bingerank.services.engine.RankingEngine` applies
the insertion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from pydantic import BaseModel, Field

from ..errors import RankingError, RankingValidationError, StateInvariantViolation
from ..models import ComparisonSession, Preference, Show

logger = logging.getLogger(__name__)

MAX_SKIPS = 5


@dataclass(slots=True)
class InsertionPoint:
    """Terminal state: ``new_show`` belongs at ``index``."""

    new_show: Show
    index: int
    forced: bool = False


@dataclass(slots=True)
class Rejected:
    """A transition that was refused without touching any state."""

    error: RankingError

    @property
    def message(self) -> str:
        return str(self.error)


class UndoHistory(BaseModel):
    """Caller-held stack of session snapshots taken before each answer or skip."""

    snapshots: list[ComparisonSession] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.snapshots)

    def push(self, session: ComparisonSession) -> None:
        self.snapshots.append(session)

    def pop(self) -> ComparisonSession | None:
        if not self.snapshots:
            return None
        return self.snapshots.pop()

    def clear(self) -> None:
        self.snapshots.clear()


def midpoint(low: int, high: int) -> int:
    return (low + high) // 2


def start_session(shows: Sequence[Show], new_show: Show) -> ComparisonSession | Rejected:
    """Open a session placing ``new_show`` into the non-empty ``shows``."""

    if not new_show.title_key:
        return Rejected(RankingValidationError("Enter a show title to rank it."))
    if not shows:
        return Rejected(
            RankingValidationError("The list is empty; add the first show directly.")
        )
    for existing in shows:
        if new_show.collides_with(existing):
            return Rejected(
                RankingValidationError(f"{existing.title!r} is already ranked.")
            )

    high = len(shows)
    return ComparisonSession(
        new_show=new_show,
        low=0,
        high=high,
        compare_index=midpoint(0, high),
        list_size=high,
    )


def check_invariants(session: ComparisonSession) -> None:
    """Raise :class:`StateInvariantViolation` for an impossible active session."""

    if session.low > session.high:
        raise StateInvariantViolation(
            f"Session bounds inverted: low={session.low} high={session.high}"
        )
    if session.high > session.list_size:
        raise StateInvariantViolation(
            f"Session upper bound {session.high} exceeds list size {session.list_size}"
        )
    if not session.low <= session.compare_index < session.high:
        raise StateInvariantViolation(
            f"Probe {session.compare_index} outside window "
            f"[{session.low}, {session.high})"
        )


def answer(
    session: ComparisonSession, preference: Preference | str
) -> ComparisonSession | InsertionPoint:
    """Narrow the window with one answer about the show at ``compare_index``."""

    check_invariants(session)
    preference = Preference(preference)

    low, high = session.low, session.high
    if preference is Preference.PREFER_NEW:
        high = session.compare_index
    elif preference is Preference.PREFER_EXISTING:
        low = session.compare_index + 1
    else:  # pragma: no cover - exhaustive over the enum
        raise StateInvariantViolation(f"Unhandled preference {preference!r}")

    if low >= high:
        logger.debug("Session for %s resolved at %s", session.new_show.title, low)
        return InsertionPoint(new_show=session.new_show, index=low)

    return session.model_copy(
        update={"low": low, "high": high, "compare_index": midpoint(low, high)}
    )


def skip(session: ComparisonSession) -> ComparisonSession | InsertionPoint:
    """Skip the current probe, moving to the closest unskipped show.

    The session is forced to finish at the end of the current window once
    :data:`MAX_SKIPS` skips have been used or no candidate remains.
    """

    check_invariants(session)
    skipped = session.skipped | {session.compare_index}
    skip_count = session.skip_count + 1

    probe = None
    if skip_count < MAX_SKIPS:
        probe = _nearest_unskipped(
            session.compare_index, session.low, session.high, skipped
        )

    if probe is None:
        logger.debug(
            "Session for %s forced to %s after %s skips",
            session.new_show.title,
            session.high,
            skip_count,
        )
        return InsertionPoint(
            new_show=session.new_show, index=session.high, forced=True
        )

    return session.model_copy(
        update={
            "compare_index": probe,
            "skipped": skipped,
            "skip_count": skip_count,
        }
    )


def undo(session: ComparisonSession, history: UndoHistory) -> ComparisonSession:
    """Restore the most recent snapshot, or return ``session`` when there is none."""

    previous = history.pop()
    if previous is None:
        return session
    return previous


def _nearest_unskipped(
    center: int, low: int, high: int, skipped: frozenset[int]
) -> int | None:
    for distance in range(1, high - low + 1):
        for candidate in (center + distance, center - distance):
            if low <= candidate < high and candidate not in skipped:
                return candidate
    return None
