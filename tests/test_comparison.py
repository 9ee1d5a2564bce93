"""State machine tests for comparison-driven insertion."""

from __future__ import annotations

import math

import pytest

from bingerank.errors import RankingValidationError, StateInvariantViolation
from bingerank.models import ComparisonSession, Preference, Show
from bingerank.services import comparison
from bingerank.services.comparison import (
    MAX_SKIPS,
    InsertionPoint,
    Rejected,
    UndoHistory,
)


def _shows(count: int) -> list[Show]:
    return [Show.create(f"Show {index}") for index in range(count)]


def _start(count: int, title: str = "Newcomer") -> ComparisonSession:
    session = comparison.start_session(_shows(count), Show.create(title))
    assert isinstance(session, ComparisonSession)
    return session


def _run(session: ComparisonSession, preference: Preference) -> tuple[InsertionPoint, int]:
    questions = 0
    result: ComparisonSession | InsertionPoint = session
    while isinstance(result, ComparisonSession):
        questions += 1
        result = comparison.answer(result, preference)
    return result, questions


def test_start_session_probes_the_middle() -> None:
    session = _start(5)

    assert (session.low, session.high, session.compare_index) == (0, 5, 2)
    assert session.list_size == 5
    assert session.skipped == frozenset()


def test_start_session_rejects_empty_list_and_duplicates() -> None:
    empty = comparison.start_session([], Show.create("Anything"))
    duplicate = comparison.start_session(_shows(3), Show.create("show 1"))
    blank = comparison.start_session(_shows(3), Show.create("  "))

    for result in (empty, duplicate, blank):
        assert isinstance(result, Rejected)
        assert isinstance(result.error, RankingValidationError)


@pytest.mark.parametrize("count", [1, 2, 3, 4, 7, 8, 15, 16, 100])
def test_always_preferring_new_inserts_at_top(count: int) -> None:
    point, questions = _run(_start(count), Preference.PREFER_NEW)

    assert point.index == 0
    assert questions <= math.ceil(math.log2(count + 1))


@pytest.mark.parametrize("count", [1, 2, 3, 4, 7, 8, 15, 16, 100])
def test_always_preferring_existing_inserts_at_bottom(count: int) -> None:
    point, questions = _run(_start(count), Preference.PREFER_EXISTING)

    assert point.index == count
    assert questions <= math.ceil(math.log2(count + 1))


def test_single_show_list_resolves_in_one_answer() -> None:
    session = _start(1)

    assert (session.low, session.high, session.compare_index) == (0, 1, 0)
    point = comparison.answer(session, Preference.PREFER_NEW)
    assert isinstance(point, InsertionPoint)
    assert point.index == 0


def test_mixed_answers_narrow_to_the_middle() -> None:
    session = _start(3)

    after_first = comparison.answer(session, Preference.PREFER_EXISTING)
    assert isinstance(after_first, ComparisonSession)
    assert (after_first.low, after_first.high, after_first.compare_index) == (2, 3, 2)

    point = comparison.answer(after_first, "new")
    assert isinstance(point, InsertionPoint)
    assert point.index == 2
    assert not point.forced


def test_skip_moves_outward_and_keeps_bounds() -> None:
    session = _start(10)
    assert session.compare_index == 5

    first = comparison.skip(session)
    assert isinstance(first, ComparisonSession)
    assert first.compare_index == 6
    assert first.skipped == frozenset({5})
    assert (first.low, first.high) == (0, 10)

    second = comparison.skip(first)
    assert isinstance(second, ComparisonSession)
    assert second.compare_index == 7
    assert second.skip_count == 2


def test_skip_falls_back_below_when_above_is_exhausted() -> None:
    session = _start(4)
    session = session.model_copy(update={"low": 2, "high": 4, "compare_index": 3})

    result = comparison.skip(session)

    assert isinstance(result, ComparisonSession)
    assert result.compare_index == 2


def test_five_skips_force_insertion_at_window_end() -> None:
    session: ComparisonSession | InsertionPoint = _start(10)
    for _ in range(MAX_SKIPS - 1):
        assert isinstance(session, ComparisonSession)
        session = comparison.skip(session)

    assert isinstance(session, ComparisonSession)
    point = comparison.skip(session)

    assert isinstance(point, InsertionPoint)
    assert point.index == 10
    assert point.forced


def test_skip_limit_uses_current_window_not_list_end() -> None:
    session = _start(10)
    narrowed = comparison.answer(session, Preference.PREFER_NEW)
    assert isinstance(narrowed, ComparisonSession)
    assert (narrowed.low, narrowed.high) == (0, 5)

    result: ComparisonSession | InsertionPoint = narrowed
    while isinstance(result, ComparisonSession):
        result = comparison.skip(result)

    assert result.index == 5
    assert result.forced


def test_skip_with_no_candidates_left_terminates() -> None:
    session = _start(1)

    point = comparison.skip(session)

    assert isinstance(point, InsertionPoint)
    assert point.index == 1
    assert point.forced


def test_answer_probes_plain_midpoint_even_if_skipped_before() -> None:
    session = _start(8)
    session = session.model_copy(update={"skipped": frozenset({2})})

    result = comparison.answer(session, Preference.PREFER_NEW)

    assert isinstance(result, ComparisonSession)
    assert (result.low, result.high) == (0, 4)
    assert result.compare_index == 2
    assert result.skipped == frozenset({2})


def test_undo_restores_previous_session() -> None:
    history = UndoHistory()
    session = _start(6)

    history.push(session)
    answered = comparison.answer(session, Preference.PREFER_EXISTING)
    assert isinstance(answered, ComparisonSession)
    history.push(answered)
    skipped = comparison.skip(answered)
    assert isinstance(skipped, ComparisonSession)

    restored = comparison.undo(skipped, history)
    assert restored == answered
    assert restored.skipped == answered.skipped

    restored = comparison.undo(restored, history)
    assert restored == session
    assert len(history) == 0


def test_undo_on_empty_history_is_noop() -> None:
    session = _start(4)

    assert comparison.undo(session, UndoHistory()) is session


def test_inverted_bounds_raise_invariant_violation() -> None:
    session = _start(4).model_copy(update={"low": 3, "high": 1, "compare_index": 2})

    with pytest.raises(StateInvariantViolation):
        comparison.answer(session, Preference.PREFER_NEW)


def test_probe_outside_window_raises_invariant_violation() -> None:
    session = _start(4).model_copy(update={"low": 0, "high": 2, "compare_index": 3})

    with pytest.raises(StateInvariantViolation):
        comparison.skip(session)


def test_session_round_trips_through_json() -> None:
    session = comparison.skip(_start(6))
    assert isinstance(session, ComparisonSession)

    restored = ComparisonSession.model_validate_json(session.model_dump_json())

    assert restored == session
