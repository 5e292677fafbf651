"""
Domain models for vocabulary scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from .constants import DEFAULT_EASE_FACTOR, DEFAULT_INTERVAL, PASSING_QUALITY


class SessionMode(str, Enum):
    """Which part of the collection a study session draws from."""

    DUE = "due"
    NEW = "new"
    REVIEW = "review"
    RANDOM = "random"


class StudyDirection(str, Enum):
    """Which side of an entry is the prompt."""

    FORWARD = "forward"  # term -> translation
    REVERSE = "reverse"  # translation -> term


class DirectionSetting(str, Enum):
    """Configured direction: fixed, or drawn per item."""

    FORWARD = "forward"
    REVERSE = "reverse"
    RANDOM = "random"


@dataclass(frozen=True)
class ScheduleState:
    """
    SM-2 scheduling state for one item.

    Attributes:
        ease_factor: Difficulty multiplier; higher means longer intervals. Never below 1.3.
        interval: Days until the next review after the current one (>= 1).
        repetitions: Consecutive successful reviews since the last failure.
        next_review: When the item is due again. None means never scheduled.
        last_review: When the item was last rated. None until the first review.
        quality: Last rating given (0-5); bookkeeping only.
    """

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = DEFAULT_INTERVAL
    repetitions: int = 0
    next_review: datetime | None = None
    last_review: datetime | None = None
    quality: int | None = None

    @property
    def is_new(self) -> bool:
        return self.repetitions == 0


@dataclass(frozen=True)
class VocabularyEntry:
    """Content payload of a flashcard. The scheduler never reads it."""

    term: str
    translation: str
    reading: str = ""
    romaji: str = ""
    example: str | None = None


@dataclass(frozen=True)
class LearnableItem:
    """A vocabulary entry plus its embedded schedule."""

    id: str
    entry: VocabularyEntry
    schedule: ScheduleState = field(default_factory=ScheduleState)

    def with_schedule(self, schedule: ScheduleState) -> "LearnableItem":
        return replace(self, schedule=schedule)


@dataclass(frozen=True)
class LearningStats:
    """
    Aggregate counts over a collection.

    new/learning/review/mastered partition the collection; due and overdue
    overlap with them.
    """

    total: int = 0
    new: int = 0
    learning: int = 0
    review: int = 0
    mastered: int = 0
    due: int = 0
    overdue: int = 0


@dataclass(frozen=True)
class CollectionOverview:
    """Coarse progress counts shown on the home screen."""

    total: int
    learned: int  # repetitions > 0
    to_review: int  # scheduled and past next_review
    available: int  # not yet learned


@dataclass(frozen=True)
class ReviewResult:
    """One completed rating inside a session."""

    item: LearnableItem
    quality: int
    direction: StudyDirection
    reviewed_at: datetime

    @property
    def correct(self) -> bool:
        return self.quality >= PASSING_QUALITY
