"""Comparison-driven ranking engine bound to one local storage scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from ..errors import SessionNotFoundError
from ..models import ComparisonSession, Preference, RankedShow, Show
from . import comparison
from .comparison import InsertionPoint, Rejected, UndoHistory
from .local_store import LocalStore
from .ordered_list import OrderedList, Outcome

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InsertionDone:
    """Terminal result of a session: where the show landed and its rating."""

    show: RankedShow
    forced: bool = False

    @property
    def index(self) -> int:
        return self.show.rank - 1


class RankingEngine:
    """Expose the ranking operations for one user (or the guest scope).

    Every call reads the current lists from the local store and writes them
    back after a mutation, so the engine itself keeps no state between calls.
    Comparison sessions and their undo history are owned by the caller.
    """

    def __init__(self, local_store: LocalStore, user_id: str | None = None):
        self._local_store = local_store
        self._user_id = user_id

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def load(self) -> OrderedList:
        return OrderedList(
            self._local_store.load_ranked(self._user_id),
            self._local_store.load_wish(self._user_id),
        )

    def save(self, lists: OrderedList) -> None:
        self._local_store.save_ranked(self._user_id, lists.shows)
        self._local_store.save_wish(self._user_id, lists.wish)

    def get_ordered_list(self) -> list[RankedShow]:
        return self.load().ranked()

    def get_wish_list(self) -> list[Show]:
        return list(self.load().wish)

    def insert_first(self, title: str, **metadata: Any) -> Outcome:
        """Rank the very first show; rejected once the list has entries."""

        return self._mutate(lambda lists: lists.insert_first(Show.create(title, **metadata)))

    def start_insertion(self, title: str, **metadata: Any) -> ComparisonSession | Rejected:
        lists = self.load()
        return comparison.start_session(lists.shows, Show.create(title, **metadata))

    def rank_show(self, show: Show) -> ComparisonSession | InsertionDone | Rejected:
        """Rank ``show`` directly into an empty list, otherwise open a session for it."""

        lists = self.load()
        if lists.shows:
            return comparison.start_session(lists.shows, show)
        outcome = lists.insert_first(show)
        if outcome.error is not None:
            return Rejected(outcome.error)
        self.save(lists)
        return InsertionDone(show=lists.ranked()[0])

    def answer(
        self,
        session: ComparisonSession,
        preference: Preference | str,
        history: UndoHistory | None = None,
    ) -> ComparisonSession | InsertionDone | Rejected:
        return self._advance(
            session, lambda current: comparison.answer(current, preference), history
        )

    def skip(
        self,
        session: ComparisonSession,
        history: UndoHistory | None = None,
    ) -> ComparisonSession | InsertionDone | Rejected:
        return self._advance(session, comparison.skip, history)

    def undo(self, session: ComparisonSession, history: UndoHistory) -> ComparisonSession:
        return comparison.undo(session, history)

    def probe(self, session: ComparisonSession) -> Show | Rejected:
        """Return the ranked show the caller should compare against next."""

        lists = self.load()
        stale = self._stale(session, lists)
        if stale is not None:
            return stale
        return lists.shows[session.compare_index]

    def reorder(self, from_index: int, to_index: int) -> Outcome:
        return self._mutate(lambda lists: lists.reorder(from_index, to_index))

    def remove(self, external_id: int) -> Outcome:
        return self._mutate(lambda lists: lists.remove_by_external_id(external_id))

    def add_wish(self, title: str, **metadata: Any) -> Outcome:
        return self._mutate(lambda lists: lists.add_wish(Show.create(title, **metadata)))

    def remove_wish(
        self, *, external_id: int | None = None, title: str | None = None
    ) -> Outcome:
        if external_id is not None:
            return self._mutate(lambda lists: lists.remove_wish_by_external_id(external_id))
        return self._mutate(lambda lists: lists.remove_wish_by_title(title or ""))

    def _mutate(self, operation: Callable[[OrderedList], Outcome]) -> Outcome:
        lists = self.load()
        outcome = operation(lists)
        if outcome.changed:
            self.save(lists)
        return outcome

    def _advance(
        self,
        session: ComparisonSession,
        transition: Callable[[ComparisonSession], ComparisonSession | InsertionPoint],
        history: UndoHistory | None,
    ) -> ComparisonSession | InsertionDone | Rejected:
        lists = self.load()
        stale = self._stale(session, lists)
        if stale is not None:
            return stale

        result = transition(session)
        if isinstance(result, ComparisonSession):
            if history is not None:
                history.push(session)
            return result

        outcome = lists.insert_at(result.new_show, result.index)
        if outcome.error is not None:
            return Rejected(outcome.error)
        self.save(lists)
        if history is not None:
            history.clear()

        ranked = lists.ranked()
        logger.info(
            "Ranked %s at #%s of %s",
            result.new_show.title,
            result.index + 1,
            len(ranked),
        )
        return InsertionDone(show=ranked[result.index], forced=result.forced)

    @staticmethod
    def _stale(session: ComparisonSession, lists: OrderedList) -> Rejected | None:
        if len(lists) != session.list_size or session.compare_index >= len(lists):
            return Rejected(
                SessionNotFoundError(
                    "The ranked list changed during the comparison; restart the insertion."
                )
            )
        return None
