"""
Review loop for one study session, as an explicit state machine.

States:
    Presenting(i)      prompt shown, answer hidden
    AnswerRevealed(i)  answer shown, waiting for a 0-5 rating
    SessionComplete    terminal; results, correctness and missed items
    SessionCancelled   terminal; aborted before the last rating

Only completed ratings are handed to the persistence callback. Cancelling
while an item is presented or revealed commits nothing for that item.
"""

import logging
import random
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from kivocab.application.scheduler import apply_review, as_utc, utcnow, validate_quality
from kivocab.application.session_builder import (
    choose_direction,
    coerce_direction,
    prompt_and_answer,
)
from kivocab.domain.errors import InvalidInput
from kivocab.domain.models import (
    DirectionSetting,
    LearnableItem,
    ReviewResult,
    StudyDirection,
)

logger = logging.getLogger(__name__)

OnRated = Callable[[LearnableItem], None]


@dataclass(frozen=True)
class Presenting:
    index: int
    direction: StudyDirection


@dataclass(frozen=True)
class AnswerRevealed:
    index: int
    direction: StudyDirection


@dataclass(frozen=True)
class SessionComplete:
    results: tuple[ReviewResult, ...]

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.results if r.correct)

    @property
    def correctness(self) -> float:
        """Share of ratings >= 3. 0.0 for an empty session."""
        if not self.results:
            return 0.0
        return self.correct_count / len(self.results)

    @property
    def missed(self) -> tuple[ReviewResult, ...]:
        return tuple(r for r in self.results if not r.correct)

    @property
    def missed_items(self) -> list[LearnableItem]:
        return [r.item for r in self.missed]


@dataclass(frozen=True)
class SessionCancelled:
    results: tuple[ReviewResult, ...]


SessionState = Presenting | AnswerRevealed | SessionComplete | SessionCancelled


@dataclass
class SessionStats:
    """Running tallies while a session is in progress."""

    correct: int = 0
    total: int = 0
    streak: int = 0
    max_streak: int = 0
    quality_counts: Counter = field(default_factory=Counter)

    def record(self, quality: int, correct: bool) -> None:
        self.total += 1
        self.quality_counts[quality] += 1
        if correct:
            self.correct += 1
            self.streak += 1
            self.max_streak = max(self.max_streak, self.streak)
        else:
            self.streak = 0


class ReviewSession:
    """
    Drives one pass over a fixed list of items.

    Args:
        items: Session queue, usually from ``build_session``.
        direction: Configured direction; RANDOM draws one per presented item.
        on_rated: Persistence callback invoked with each updated item.
        rng: Random source for direction draws.
    """

    def __init__(
        self,
        items: Sequence[LearnableItem],
        direction: DirectionSetting | str = DirectionSetting.FORWARD,
        on_rated: OnRated | None = None,
        rng: random.Random | None = None,
    ):
        self.items: list[LearnableItem] = list(items)
        self.direction = coerce_direction(direction)
        self.on_rated = on_rated
        self.rng = rng
        self.stats = SessionStats()
        self._results: list[ReviewResult] = []

        if self.items:
            self.state: SessionState = self._present(0)
        else:
            logger.info("Nothing to study; session complete immediately")
            self.state = SessionComplete(results=())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def results(self) -> tuple[ReviewResult, ...]:
        return tuple(self._results)

    @property
    def is_finished(self) -> bool:
        return isinstance(self.state, (SessionComplete, SessionCancelled))

    @property
    def current_item(self) -> LearnableItem | None:
        if isinstance(self.state, (Presenting, AnswerRevealed)):
            return self.items[self.state.index]
        return None

    def prompt(self) -> str:
        """Prompt text for the current item."""
        item, direction = self._active()
        return prompt_and_answer(item, direction)[0]

    def answer(self) -> str:
        """Answer text; only available once revealed."""
        if not isinstance(self.state, AnswerRevealed):
            raise InvalidInput("Answer has not been revealed yet")
        item = self.items[self.state.index]
        return prompt_and_answer(item, self.state.direction)[1]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def reveal(self) -> AnswerRevealed:
        """Presenting(i) -> AnswerRevealed(i)."""
        if not isinstance(self.state, Presenting):
            raise InvalidInput(f"Cannot reveal from {type(self.state).__name__}")
        self.state = AnswerRevealed(index=self.state.index, direction=self.state.direction)
        return self.state

    def rate(self, quality: int, now: datetime | None = None) -> ReviewResult:
        """
        AnswerRevealed(i) -> Presenting(i+1) or SessionComplete.

        The new schedule is computed and handed to ``on_rated`` before the
        session advances. If the callback raises, the error propagates and
        the session stays on the revealed item.
        """
        if not isinstance(self.state, AnswerRevealed):
            raise InvalidInput(f"Cannot rate from {type(self.state).__name__}")
        validate_quality(quality)

        reviewed_at = as_utc(now) if now is not None else utcnow()
        index = self.state.index
        item = self.items[index]
        updated = item.with_schedule(apply_review(item.schedule, quality, reviewed_at))

        if self.on_rated is not None:
            self.on_rated(updated)

        result = ReviewResult(
            item=updated,
            quality=quality,
            direction=self.state.direction,
            reviewed_at=reviewed_at,
        )
        self.items[index] = updated
        self._results.append(result)
        self.stats.record(quality, result.correct)

        if index + 1 < len(self.items):
            self.state = self._present(index + 1)
        else:
            self.state = SessionComplete(results=tuple(self._results))
            logger.info(
                f"Session complete: {self.state.correct_count}/{len(self._results)} correct"
            )
        return result

    def cancel(self) -> SessionCancelled:
        """Abort from any non-terminal state. Completed ratings stay committed."""
        if self.is_finished:
            raise InvalidInput(f"Cannot cancel from {type(self.state).__name__}")
        self.state = SessionCancelled(results=tuple(self._results))
        logger.info(f"Session cancelled after {len(self._results)} ratings")
        return self.state

    def repeat_missed(self) -> "ReviewSession":
        """
        Start a new session over exactly the items rated below 3.

        The list is fixed; it is not re-queried by mode or due-ness.
        """
        if not isinstance(self.state, SessionComplete):
            raise InvalidInput("Missed items are only available once the session is complete")
        return ReviewSession(
            self.state.missed_items,
            direction=self.direction,
            on_rated=self.on_rated,
            rng=self.rng,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _present(self, index: int) -> Presenting:
        return Presenting(index=index, direction=choose_direction(self.direction, self.rng))

    def _active(self) -> tuple[LearnableItem, StudyDirection]:
        if not isinstance(self.state, (Presenting, AnswerRevealed)):
            raise InvalidInput(f"No active item in {type(self.state).__name__}")
        return self.items[self.state.index], self.state.direction
