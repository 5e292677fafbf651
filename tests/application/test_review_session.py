"""Tests for the review loop state machine."""

import random
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from conftest import NOW, days_ago, make_item

from kivocab.application.review_session import (
    AnswerRevealed,
    Presenting,
    ReviewSession,
    SessionCancelled,
    SessionComplete,
)
from kivocab.domain.errors import InvalidInput, StorageError
from kivocab.domain.models import DirectionSetting, StudyDirection


@pytest.fixture
def items():
    return [make_item(f"v{n}", repetitions=1, next_review=days_ago(n)) for n in range(1, 5)]


def run(session: ReviewSession, qualities: list[int]) -> None:
    for quality in qualities:
        session.reveal()
        session.rate(quality, now=NOW)


def test_starts_presenting_first_item(items):
    session = ReviewSession(items)
    assert session.state == Presenting(index=0, direction=StudyDirection.FORWARD)
    assert session.current_item.id == "v1"
    assert session.prompt() == "term-v1"


def test_reveal_then_rate_advances(items):
    session = ReviewSession(items)
    revealed = session.reveal()

    assert revealed == AnswerRevealed(index=0, direction=StudyDirection.FORWARD)
    assert session.answer() == "translation-v1"

    result = session.rate(4, now=NOW)
    assert result.quality == 4
    assert result.item.schedule.repetitions == 2
    assert result.item.schedule.quality == 4
    assert isinstance(session.state, Presenting)
    assert session.state.index == 1


def test_full_session_completes_with_correctness(items):
    on_rated = MagicMock()
    session = ReviewSession(items, on_rated=on_rated)
    run(session, [5, 1, 4, 2])

    state = session.state
    assert isinstance(state, SessionComplete)
    assert session.is_finished
    assert state.correct_count == 2
    assert state.correctness == 0.5
    assert [r.item.id for r in state.missed] == ["v2", "v4"]
    assert on_rated.call_count == 4
    persisted = [call.args[0] for call in on_rated.call_args_list]
    assert [i.id for i in persisted] == ["v1", "v2", "v3", "v4"]
    assert persisted[1].schedule.repetitions == 0
    assert persisted[0].schedule.next_review == NOW + timedelta(days=6)


def test_repeat_missed_contains_exactly_missed_items(items):
    session = ReviewSession(items, on_rated=MagicMock())
    run(session, [0, 5, 2, 3])

    repeat = session.repeat_missed()
    assert [i.id for i in repeat.items] == ["v1", "v3"]
    # The repeat works from the rescheduled items, not a fresh query
    assert all(i.schedule.next_review == NOW + timedelta(days=1) for i in repeat.items)
    assert repeat.on_rated is session.on_rated

    run(repeat, [4, 1])
    assert [i.id for i in repeat.state.missed_items] == ["v3"]
    assert [i.id for i in repeat.repeat_missed().items] == ["v3"]


def test_repeat_missed_requires_complete_session(items):
    session = ReviewSession(items)
    with pytest.raises(InvalidInput):
        session.repeat_missed()


def test_no_missed_items_gives_empty_repeat(items):
    session = ReviewSession(items)
    run(session, [5, 5, 4, 3])
    repeat = session.repeat_missed()
    assert isinstance(repeat.state, SessionComplete)
    assert repeat.results == ()


def test_empty_session_is_complete_immediately():
    session = ReviewSession([])
    assert isinstance(session.state, SessionComplete)
    assert session.state.correctness == 0.0
    assert session.current_item is None


def test_cannot_rate_before_reveal(items):
    session = ReviewSession(items)
    with pytest.raises(InvalidInput):
        session.rate(5)
    with pytest.raises(InvalidInput):
        session.answer()


def test_cannot_reveal_twice(items):
    session = ReviewSession(items)
    session.reveal()
    with pytest.raises(InvalidInput):
        session.reveal()


def test_invalid_quality_leaves_state_untouched(items):
    on_rated = MagicMock()
    session = ReviewSession(items, on_rated=on_rated)
    session.reveal()

    with pytest.raises(InvalidInput):
        session.rate(6)

    assert isinstance(session.state, AnswerRevealed)
    assert session.results == ()
    on_rated.assert_not_called()


def test_cancel_commits_nothing_for_current_item(items):
    on_rated = MagicMock()
    session = ReviewSession(items, on_rated=on_rated)
    run(session, [5])
    session.reveal()

    cancelled = session.cancel()

    assert isinstance(cancelled, SessionCancelled)
    assert [r.item.id for r in cancelled.results] == ["v1"]
    on_rated.assert_called_once()
    with pytest.raises(InvalidInput):
        session.reveal()
    with pytest.raises(InvalidInput):
        session.cancel()


def test_persistence_failure_propagates_without_advancing(items):
    on_rated = MagicMock(side_effect=StorageError("disk full"))
    session = ReviewSession(items, on_rated=on_rated)
    session.reveal()

    with pytest.raises(StorageError):
        session.rate(5, now=NOW)

    assert session.state == AnswerRevealed(index=0, direction=StudyDirection.FORWARD)
    assert session.results == ()
    assert session.stats.total == 0


def test_reverse_direction(items):
    session = ReviewSession(items, direction=DirectionSetting.REVERSE)
    assert session.prompt() == "translation-v1"
    session.reveal()
    assert session.answer() == "term-v1"


def test_random_direction_drawn_per_item():
    many = [make_item(f"v{n}") for n in range(30)]
    session = ReviewSession(many, direction="random", rng=random.Random(5))
    seen = set()
    while not session.is_finished:
        seen.add(session.state.direction)
        session.reveal()
        session.rate(5, now=NOW)
    assert seen == {StudyDirection.FORWARD, StudyDirection.REVERSE}
    assert {r.direction for r in session.results} == seen


def test_session_stats_track_streaks(items):
    session = ReviewSession(items + [make_item("v5")])
    run(session, [5, 4, 1, 3, 5])

    stats = session.stats
    assert (stats.correct, stats.total, stats.streak, stats.max_streak) == (4, 5, 2, 2)
    assert stats.quality_counts[5] == 2
    assert stats.quality_counts[1] == 1


def test_unknown_direction_rejected(items):
    with pytest.raises(InvalidInput, match="Unknown direction"):
        ReviewSession(items, direction="sideways")


def test_naive_review_time_recorded_as_utc(items):
    session = ReviewSession(items)
    session.reveal()
    result = session.rate(5, now=datetime(2024, 1, 1))

    assert result.reviewed_at == NOW
    assert result.reviewed_at.tzinfo is not None
    assert result.item.schedule.last_review == result.reviewed_at
