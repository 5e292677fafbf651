"""
SM-2 scheduling engine.

Pure computation over ScheduleState values: no I/O, no randomness, no
shared state. Persisting the returned state is the caller's job.
"""

import math
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from kivocab.domain.constants import (
    DEFAULT_INTERVAL,
    EASE_DECIMALS,
    LEARNING_MAX_REPETITIONS,
    MAX_INTERVAL_DAYS,
    MASTERED_MIN_EASE,
    MASTERED_MIN_REPETITIONS,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    OVERDUE_THRESHOLD_DAYS,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)
from kivocab.domain.errors import InvalidInput
from kivocab.domain.models import CollectionOverview, LearnableItem, LearningStats, ScheduleState

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    # Naive timestamps are read as UTC so they compare with stored values.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def validate_quality(quality: int) -> int:
    """Reject anything that is not an integer rating in [0, 5]."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidInput(f"Quality must be an integer, got {quality!r}")
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidInput(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}"
        )
    return quality


def compute_next_schedule(
    state: ScheduleState, quality: int, now: datetime | None = None
) -> ScheduleState:
    """
    Compute the schedule that follows rating ``state`` with ``quality``.

    Failure (quality < 3) resets repetitions to 0 and interval to 1 and leaves
    the ease factor untouched. Success bumps repetitions and walks the interval
    ladder 1, 6, round(previous_interval * ease_factor), capped at
    MAX_INTERVAL_DAYS; the ease factor is
    then adjusted by the SM-2 formula, floored at 1.3 and rounded to 2 decimals.

    The ``quality`` field of the returned state is carried over unchanged;
    use ``apply_review`` to record the rating as well.

    Args:
        state: Current schedule.
        quality: Self-assessed recall, 0 (blackout) to 5 (perfect).
        now: Review time. Defaults to the current UTC time.

    Raises:
        InvalidInput: quality is not an integer in [0, 5].
    """
    validate_quality(quality)
    reviewed_at = as_utc(now) if now is not None else utcnow()

    ease_factor = state.ease_factor

    if quality < PASSING_QUALITY:
        repetitions = 0
        interval = DEFAULT_INTERVAL
    else:
        repetitions = state.repetitions + 1
        if repetitions == 1:
            interval = DEFAULT_INTERVAL
        elif repetitions == 2:
            interval = SECOND_INTERVAL
        else:
            # Previous interval times the ease factor before this review's adjustment
            interval = int(_round_half_up(state.interval * ease_factor))

        miss = MAX_QUALITY - quality
        ease_factor = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))

    ease_factor = max(ease_factor, MIN_EASE_FACTOR)
    interval = min(max(interval, DEFAULT_INTERVAL), MAX_INTERVAL_DAYS)

    return replace(
        state,
        ease_factor=_round_half_up(ease_factor, EASE_DECIMALS),
        interval=interval,
        repetitions=repetitions,
        next_review=reviewed_at + timedelta(days=interval),
        last_review=reviewed_at,
    )


def apply_review(
    state: ScheduleState, quality: int, now: datetime | None = None
) -> ScheduleState:
    """Run the engine and record ``quality`` on the resulting state."""
    return replace(compute_next_schedule(state, quality, now), quality=quality)


def reset_schedule() -> ScheduleState:
    """Fresh defaults for a new or reset item."""
    return ScheduleState()


def is_due(state: ScheduleState, now: datetime) -> bool:
    """True if the item was never scheduled or its next review has arrived."""
    if state.next_review is None:
        return True
    return as_utc(state.next_review) <= as_utc(now)


def get_due_items(items: Iterable[LearnableItem], now: datetime) -> list[LearnableItem]:
    """Filter to due items, preserving input order."""
    return [item for item in items if is_due(item.schedule, now)]


def _overdue_by(state: ScheduleState, now: datetime) -> timedelta:
    next_review = as_utc(state.next_review) if state.next_review is not None else EPOCH
    return as_utc(now) - next_review


def sort_by_priority(items: Iterable[LearnableItem], now: datetime) -> list[LearnableItem]:
    """
    Return a new list ordered most-overdue first, harder items first on ties.

    Never-scheduled items count as overdue since the epoch. The sort is
    stable and the input is left untouched.
    """
    return sorted(
        items,
        key=lambda item: (-_overdue_by(item.schedule, now), item.schedule.ease_factor),
    )


def _is_mastered(state: ScheduleState) -> bool:
    return (
        state.repetitions >= MASTERED_MIN_REPETITIONS
        and state.ease_factor >= MASTERED_MIN_EASE
    )


def get_learning_stats(items: Iterable[LearnableItem], now: datetime) -> LearningStats:
    """
    Count items per learning bucket in a single pass.

    new (0 reps), learning (1-2), review (3+ but not mastered) and mastered
    (5+ reps with ease >= 2.5) partition the collection. due and overdue
    are counted independently, so an item can be both new and due.
    """
    total = new = learning = review = mastered = due = overdue = 0
    threshold = timedelta(days=OVERDUE_THRESHOLD_DAYS)

    for item in items:
        state = item.schedule
        total += 1

        if state.repetitions == 0:
            new += 1
        elif state.repetitions <= LEARNING_MAX_REPETITIONS:
            learning += 1
        elif _is_mastered(state):
            mastered += 1
        else:
            review += 1

        if is_due(state, now):
            due += 1
            if state.next_review is not None and _overdue_by(state, now) > threshold:
                overdue += 1

    return LearningStats(
        total=total,
        new=new,
        learning=learning,
        review=review,
        mastered=mastered,
        due=due,
        overdue=overdue,
    )


def get_overview(items: Iterable[LearnableItem], now: datetime) -> CollectionOverview:
    """Learned / to-review / available counts for the home screen."""
    total = learned = to_review = 0
    for item in items:
        state = item.schedule
        total += 1
        if state.repetitions > 0:
            learned += 1
        if state.next_review is not None and is_due(state, now):
            to_review += 1
    return CollectionOverview(
        total=total, learned=learned, to_review=to_review, available=total - learned
    )
