"""Tests for session building and direction selection."""

import random
from datetime import timedelta

import pytest
from conftest import NOW, days_ago, make_item

from kivocab.application.session_builder import (
    SUPPORTED_DIRECTIONS,
    build_session,
    choose_direction,
    prompt_and_answer,
)
from kivocab.domain.errors import InvalidInput
from kivocab.domain.models import DirectionSetting, SessionMode, StudyDirection


@pytest.fixture
def collection():
    """Ten items: three new, seven already reviewed with mixed due dates."""
    items = [
        make_item("r1", repetitions=3, next_review=days_ago(4)),
        make_item("n1"),
        make_item("r2", repetitions=1, next_review=NOW + timedelta(days=1)),
        make_item("r3", repetitions=2, next_review=days_ago(1), ease_factor=2.1),
        make_item("n2", ease_factor=1.8),
        make_item("r4", repetitions=5, next_review=NOW + timedelta(days=20)),
        make_item("r5", repetitions=4, next_review=days_ago(1), ease_factor=1.7),
        make_item("n3", ease_factor=2.2),
        make_item("r6", repetitions=1, next_review=days_ago(9)),
        make_item("r7", repetitions=2, next_review=NOW + timedelta(days=3)),
    ]
    return items


def ids(items):
    return [i.id for i in items]


class TestBuildSession:
    def test_new_mode_returns_only_new_items_by_priority(self, collection):
        session = build_session(collection, SessionMode.NEW, DirectionSetting.FORWARD, 10, NOW)
        assert ids(session) == ["n2", "n3", "n1"]

    def test_due_mode(self, collection):
        session = build_session(collection, "due", "forward", 10, NOW)
        assert ids(session) == ["n2", "n3", "n1", "r6", "r1", "r5", "r3"]

    def test_review_mode(self, collection):
        session = build_session(collection, SessionMode.REVIEW, DirectionSetting.RANDOM, 10, NOW)
        assert ids(session) == ["r6", "r1", "r5", "r3", "r2", "r7", "r4"]

    def test_truncates_to_session_size(self, collection):
        session = build_session(collection, SessionMode.DUE, DirectionSetting.FORWARD, 2, NOW)
        assert ids(session) == ["n2", "n3"]

    def test_random_mode_is_a_shuffle_of_everything(self, collection):
        session = build_session(
            collection, SessionMode.RANDOM, DirectionSetting.FORWARD, 50, NOW, rng=random.Random(7)
        )
        assert sorted(ids(session)) == sorted(ids(collection))

    def test_random_mode_reproducible_with_seed(self, collection):
        first = build_session(collection, "random", "forward", 4, NOW, rng=random.Random(3))
        second = build_session(collection, "random", "forward", 4, NOW, rng=random.Random(3))
        assert ids(first) == ids(second)
        assert len(first) == 4

    def test_does_not_mutate_input(self, collection):
        before = list(collection)
        build_session(collection, "random", "forward", 10, NOW, rng=random.Random(1))
        build_session(collection, "due", "forward", 10, NOW)
        assert collection == before

    def test_empty_result_is_not_an_error(self):
        items = [make_item("r", repetitions=2, next_review=NOW + timedelta(days=5))]
        assert build_session(items, SessionMode.DUE, DirectionSetting.FORWARD, 10, NOW) == []
        assert build_session([], SessionMode.RANDOM, DirectionSetting.FORWARD, 10, NOW) == []

    @pytest.mark.parametrize("size", [0, -3])
    def test_rejects_bad_session_size(self, collection, size):
        with pytest.raises(InvalidInput):
            build_session(collection, SessionMode.DUE, DirectionSetting.FORWARD, size, NOW)

    def test_rejects_unknown_mode(self, collection):
        with pytest.raises(InvalidInput, match="mode"):
            build_session(collection, "cram", DirectionSetting.FORWARD, 5, NOW)

    def test_rejects_unknown_direction(self, collection):
        with pytest.raises(InvalidInput, match="direction"):
            build_session(collection, SessionMode.DUE, "sideways", 5, NOW)


class TestDirection:
    def test_fixed_directions(self):
        assert choose_direction(DirectionSetting.FORWARD) is StudyDirection.FORWARD
        assert choose_direction("reverse") is StudyDirection.REVERSE

    def test_random_draws_from_supported_set(self):
        rng = random.Random(42)
        drawn = {choose_direction(DirectionSetting.RANDOM, rng) for _ in range(50)}
        assert drawn == set(SUPPORTED_DIRECTIONS)

    def test_prompt_and_answer(self):
        item = make_item("x", term="猫", reading="ねこ", translation="Katze")
        assert prompt_and_answer(item, StudyDirection.FORWARD) == ("猫 (ねこ)", "Katze")
        assert prompt_and_answer(item, StudyDirection.REVERSE) == ("Katze", "猫 (ねこ)")

    def test_reading_omitted_when_same_as_term(self):
        item = make_item("x", term="ねこ", reading="ねこ", translation="Katze")
        assert prompt_and_answer(item, StudyDirection.FORWARD) == ("ねこ", "Katze")
