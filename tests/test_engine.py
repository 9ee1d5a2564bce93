"""End-to-end ranking flows against a temporary local store."""

from __future__ import annotations

import pytest

from bingerank.errors import RankingValidationError, SessionNotFoundError
from bingerank.models import ComparisonSession, Preference, Show
from bingerank.services.comparison import Rejected, UndoHistory
from bingerank.services.engine import InsertionDone, RankingEngine
from bingerank.services.local_store import LocalStore


@pytest.fixture
def engine(tmp_path) -> RankingEngine:
    return RankingEngine(LocalStore(tmp_path), "user-1")


def _titles(engine: RankingEngine) -> list[str]:
    return [show.title for show in engine.get_ordered_list()]


def _seed(engine: RankingEngine, *titles: str) -> None:
    first, *rest = titles
    assert engine.insert_first(first).ok
    for title in rest:
        result: ComparisonSession | InsertionDone | Rejected = engine.start_insertion(title)
        while isinstance(result, ComparisonSession):
            result = engine.answer(result, Preference.PREFER_EXISTING)
        assert isinstance(result, InsertionDone)


def test_scenario_first_show_scores_ten(engine: RankingEngine) -> None:
    outcome = engine.insert_first("Show A")

    assert outcome.ok and outcome.changed
    ranked = engine.get_ordered_list()
    assert [(show.title, show.rating) for show in ranked] == [("Show A", 10.0)]


def test_scenario_second_show_preferred_over_first(engine: RankingEngine) -> None:
    engine.insert_first("Show A")

    session = engine.start_insertion("Show B")
    assert isinstance(session, ComparisonSession)
    assert (session.low, session.high, session.compare_index) == (0, 1, 0)
    probe = engine.probe(session)
    assert not isinstance(probe, Rejected)
    assert probe.title == "Show A"

    done = engine.answer(session, Preference.PREFER_NEW)

    assert isinstance(done, InsertionDone)
    assert done.index == 0
    ranked = engine.get_ordered_list()
    assert [(show.title, show.rating) for show in ranked] == [
        ("Show B", 10.0),
        ("Show A", 1.0),
    ]


def test_scenario_two_answers_place_show_third(engine: RankingEngine) -> None:
    _seed(engine, "A", "B", "C")
    assert _titles(engine) == ["A", "B", "C"]

    session = engine.start_insertion("D")
    assert isinstance(session, ComparisonSession)
    assert session.compare_index == 1

    session = engine.answer(session, Preference.PREFER_EXISTING)
    assert isinstance(session, ComparisonSession)
    assert session.compare_index == 2

    done = engine.answer(session, Preference.PREFER_NEW)

    assert isinstance(done, InsertionDone)
    assert _titles(engine) == ["A", "B", "D", "C"]
    assert done.show.rank == 3


def test_insert_first_rejected_once_list_has_shows(engine: RankingEngine) -> None:
    engine.insert_first("Show A")

    outcome = engine.insert_first("Show B")

    assert isinstance(outcome.error, RankingValidationError)
    assert _titles(engine) == ["Show A"]


def test_start_insertion_requires_existing_shows(engine: RankingEngine) -> None:
    result = engine.start_insertion("Show A")

    assert isinstance(result, Rejected)
    assert isinstance(result.error, RankingValidationError)


def test_duplicate_title_is_rejected_explicitly(engine: RankingEngine) -> None:
    engine.insert_first("The Bear")

    result = engine.start_insertion("THE BEAR")

    assert isinstance(result, Rejected)
    assert "already ranked" in result.message


def test_stale_session_must_restart(engine: RankingEngine) -> None:
    _seed(engine, "A", "B")
    first = engine.start_insertion("C")
    second = engine.start_insertion("D")
    assert isinstance(first, ComparisonSession)
    assert isinstance(second, ComparisonSession)

    while isinstance(first, ComparisonSession):
        first = engine.answer(first, Preference.PREFER_NEW)
    assert isinstance(first, InsertionDone)

    result = engine.answer(second, Preference.PREFER_NEW)

    assert isinstance(result, Rejected)
    assert isinstance(result.error, SessionNotFoundError)
    assert _titles(engine) == ["C", "A", "B"]


def test_history_records_each_step_and_clears_on_completion(
    engine: RankingEngine,
) -> None:
    _seed(engine, "A", "B", "C", "D")
    history = UndoHistory()
    session = engine.start_insertion("E")
    assert isinstance(session, ComparisonSession)

    skipped = engine.skip(session, history)
    assert isinstance(skipped, ComparisonSession)
    answered = engine.answer(skipped, Preference.PREFER_NEW, history)
    assert isinstance(answered, ComparisonSession)
    assert len(history) == 2

    assert engine.undo(answered, history) == skipped
    assert engine.undo(skipped, history) == session
    assert engine.undo(session, history) == session

    result: ComparisonSession | InsertionDone | Rejected = session
    while isinstance(result, ComparisonSession):
        result = engine.answer(result, Preference.PREFER_EXISTING, history)
    assert isinstance(result, InsertionDone)
    assert len(history) == 0
    assert _titles(engine)[-1] == "E"


def test_forced_completion_after_skips(engine: RankingEngine) -> None:
    _seed(engine, *[f"Show {index}" for index in range(10)])

    result: ComparisonSession | InsertionDone | Rejected = engine.start_insertion("Undecided")
    while isinstance(result, ComparisonSession):
        result = engine.skip(result)

    assert isinstance(result, InsertionDone)
    assert result.forced
    assert _titles(engine)[-1] == "Undecided"


def test_reorder_and_remove_persist(engine: RankingEngine, tmp_path) -> None:
    assert engine.insert_first("Andor", external_id=83867).ok
    session = engine.start_insertion("Severance", external_id=95396)
    assert isinstance(session, ComparisonSession)
    engine.answer(session, Preference.PREFER_EXISTING)

    assert engine.reorder(1, 0).changed
    reloaded = RankingEngine(LocalStore(tmp_path), "user-1")
    assert _titles(reloaded) == ["Severance", "Andor"]

    assert engine.remove(95396).changed
    assert _titles(reloaded) == ["Andor"]


def test_ranking_a_wished_show_clears_the_bookmark(engine: RankingEngine) -> None:
    engine.insert_first("Andor", external_id=83867)
    assert engine.add_wish("Shogun", external_id=126308).ok
    assert not engine.add_wish("andor").ok

    session = engine.start_insertion("Shogun", external_id=126308)
    assert isinstance(session, ComparisonSession)
    engine.answer(session, Preference.PREFER_NEW)

    assert _titles(engine) == ["Shogun", "Andor"]
    assert engine.get_wish_list() == []


def test_scopes_are_isolated(tmp_path) -> None:
    store = LocalStore(tmp_path)
    RankingEngine(store, "user-1").insert_first("Dark")

    assert RankingEngine(store, None).get_ordered_list() == []
    assert RankingEngine(store, "user-2").get_ordered_list() == []


def test_user_ids_differing_only_in_punctuation_stay_isolated(tmp_path) -> None:
    store = LocalStore(tmp_path)
    RankingEngine(store, "a b").insert_first("Severance")

    assert RankingEngine(store, "a_b").get_ordered_list() == []
    assert [show.title for show in RankingEngine(store, "a b").get_ordered_list()] == [
        "Severance"
    ]


def test_rejected_completion_leaves_history_untouched(tmp_path) -> None:
    store = LocalStore(tmp_path)
    engine = RankingEngine(store, "user-1")
    _seed(engine, "A", "B")
    history = UndoHistory()
    session = engine.start_insertion("C")
    assert isinstance(session, ComparisonSession)
    previous = engine.skip(session, history)
    assert isinstance(previous, ComparisonSession)
    assert len(history) == 1

    # Same length, so the session is not stale, but "C" is now taken.
    first, _ = store.load_ranked("user-1")
    store.save_ranked("user-1", [first, Show.create("C")])

    result = engine.answer(previous, Preference.PREFER_NEW, history)

    assert isinstance(result, Rejected)
    assert "already ranked" in result.message
    assert history.snapshots == [session]


def test_rank_show_inserts_first_then_opens_session(engine: RankingEngine) -> None:
    first = engine.rank_show(Show.create("Dark", external_id=70523))
    assert isinstance(first, InsertionDone)
    assert first.show.rating == 10.0

    session = engine.rank_show(Show.create("Andor", external_id=83867))
    assert isinstance(session, ComparisonSession)
    assert session.list_size == 1

    duplicate = engine.rank_show(Show.create("DARK"))
    assert isinstance(duplicate, Rejected)
    assert _titles(engine) == ["Dark"]
