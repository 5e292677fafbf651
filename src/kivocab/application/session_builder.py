"""
Session builder for study sessions.

Selects a bounded, prioritized subset of the collection by:
1. Filtering for the chosen mode (due / new / review / random)
2. Sorting by review priority (or shuffling for random mode)
3. Truncating to the configured session size
"""

import logging
import random
from collections.abc import Sequence
from datetime import datetime

from kivocab.application.scheduler import get_due_items, sort_by_priority
from kivocab.domain.errors import InvalidInput
from kivocab.domain.models import (
    DirectionSetting,
    LearnableItem,
    SessionMode,
    StudyDirection,
)

logger = logging.getLogger(__name__)

SUPPORTED_DIRECTIONS: tuple[StudyDirection, ...] = (
    StudyDirection.FORWARD,
    StudyDirection.REVERSE,
)


def build_session(
    items: Sequence[LearnableItem],
    mode: SessionMode | str,
    direction: DirectionSetting | str,
    session_size: int,
    now: datetime,
    rng: random.Random | None = None,
) -> list[LearnableItem]:
    """
    Build the ordered queue for one study session.

    Args:
        items: The full collection.
        mode: Which items to draw from.
        direction: Configured question direction. Validated here, applied per
            item by ``choose_direction`` while the session runs.
        session_size: Maximum number of items in the session (>= 1).
        now: Reference time for due-ness and priority.
        rng: Random source for random mode. Defaults to the module-level one.

    Returns:
        At most ``session_size`` items. An empty list means there is nothing
        to study; callers end the session immediately.

    Raises:
        InvalidInput: Unknown mode or direction, or session_size < 1.
    """
    mode = _coerce_mode(mode)
    coerce_direction(direction)
    if session_size < 1:
        raise InvalidInput(f"Session size must be at least 1, got {session_size}")

    if mode is SessionMode.DUE:
        selected = sort_by_priority(get_due_items(items, now), now)
    elif mode is SessionMode.NEW:
        selected = sort_by_priority([i for i in items if i.schedule.repetitions == 0], now)
    elif mode is SessionMode.REVIEW:
        selected = sort_by_priority([i for i in items if i.schedule.repetitions > 0], now)
    else:
        selected = list(items)
        (rng or random).shuffle(selected)

    logger.debug(
        f"Session mode={mode.value}: {len(selected)} of {len(items)} items matched, "
        f"taking {min(len(selected), session_size)}"
    )
    return selected[:session_size]


def choose_direction(
    setting: DirectionSetting | str, rng: random.Random | None = None
) -> StudyDirection:
    """Resolve the configured direction for a single presented item."""
    setting = coerce_direction(setting)
    if setting is DirectionSetting.RANDOM:
        return (rng or random).choice(SUPPORTED_DIRECTIONS)
    return StudyDirection(setting.value)


def prompt_and_answer(item: LearnableItem, direction: StudyDirection) -> tuple[str, str]:
    """
    Split an entry into (prompt, answer) text for the given direction.

    The reading is shown alongside the term whenever it differs from it.
    """
    entry = item.entry
    term_side = entry.term
    if entry.reading and entry.reading != entry.term:
        term_side = f"{entry.term} ({entry.reading})"

    if direction is StudyDirection.FORWARD:
        return term_side, entry.translation
    return entry.translation, term_side


def _coerce_mode(mode: SessionMode | str) -> SessionMode:
    try:
        return SessionMode(mode)
    except ValueError as e:
        raise InvalidInput(f"Unknown session mode: {mode!r}") from e


def coerce_direction(direction: DirectionSetting | str) -> DirectionSetting:
    try:
        return DirectionSetting(direction)
    except ValueError as e:
        raise InvalidInput(f"Unknown direction: {direction!r}") from e
