"""
JSON Item Repository: infrastructure adapter for a flat JSON file.

Implements ItemRepository on top of a single file holding
``{"meta": {...}, "cards": [...]}``. A bare list of cards is also accepted
on read, which covers older exports.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from kivocab.domain.constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    STORE_FORMAT_VERSION,
)
from kivocab.domain.errors import StorageError
from kivocab.domain.models import LearnableItem, ScheduleState, VocabularyEntry
from kivocab.domain.ports import ItemRepository

logger = logging.getLogger(__name__)


def _utc(moment: datetime | None) -> datetime | None:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class Sm2Record(BaseModel):
    """Persisted schedule block; keys are camelCase on disk."""

    model_config = ConfigDict(populate_by_name=True)

    ease_factor: float = Field(DEFAULT_EASE_FACTOR, alias="easeFactor", ge=MIN_EASE_FACTOR)
    interval: int = Field(DEFAULT_INTERVAL, ge=1)
    repetitions: int = Field(0, ge=0)
    next_review: datetime | None = Field(None, alias="nextReview")
    last_review: datetime | None = Field(None, alias="lastReview")
    quality: int | None = Field(None, ge=MIN_QUALITY, le=MAX_QUALITY)

    @classmethod
    def from_domain(cls, state: ScheduleState) -> "Sm2Record":
        return cls(
            ease_factor=state.ease_factor,
            interval=state.interval,
            repetitions=state.repetitions,
            next_review=state.next_review,
            last_review=state.last_review,
            quality=state.quality,
        )

    def to_domain(self) -> ScheduleState:
        return ScheduleState(
            ease_factor=self.ease_factor,
            interval=self.interval,
            repetitions=self.repetitions,
            next_review=_utc(self.next_review),
            last_review=_utc(self.last_review),
            quality=self.quality,
        )


class CardRecord(BaseModel):
    """
    One persisted card.

    Reads the Japanese-German field names of the bundled starter deck
    (kanji / kana / de) as well as the generic ones.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    term: str = Field(validation_alias=AliasChoices("term", "kanji"))
    reading: str = Field("", validation_alias=AliasChoices("reading", "kana"))
    romaji: str = ""
    translation: str = Field(validation_alias=AliasChoices("translation", "de"))
    example: str | None = None
    sm2: Sm2Record = Field(default_factory=Sm2Record)

    @classmethod
    def from_domain(cls, item: LearnableItem) -> "CardRecord":
        entry = item.entry
        return cls(
            id=item.id,
            term=entry.term,
            reading=entry.reading,
            romaji=entry.romaji,
            translation=entry.translation,
            example=entry.example,
            sm2=Sm2Record.from_domain(item.schedule),
        )

    def to_domain(self) -> LearnableItem:
        return LearnableItem(
            id=self.id,
            entry=VocabularyEntry(
                term=self.term,
                translation=self.translation,
                reading=self.reading,
                romaji=self.romaji,
                example=self.example,
            ),
            schedule=self.sm2.to_domain(),
        )


class JsonItemRepository(ItemRepository):
    """
    Stores the whole collection in one JSON file.

    Malformed cards are skipped with a warning on load; an unreadable or
    unparsable file raises StorageError. Writes go to a sibling temp file
    first and replace the target in one step.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_all(self) -> list[LearnableItem]:
        if not self.path.exists():
            logger.info(f"No data file at {self.path}; starting empty")
            return []

        raw = self._read()
        cards = raw.get("cards", []) if isinstance(raw, dict) else raw
        if not isinstance(cards, list):
            raise StorageError(f"{self.path}: 'cards' must be a list")

        items: list[LearnableItem] = []
        for index, card in enumerate(cards):
            try:
                items.append(CardRecord.model_validate(card).to_domain())
            except ValidationError as e:
                logger.warning(f"Skipping malformed card #{index} in {self.path}: {e}")
        return items

    def save_all(self, items: list[LearnableItem]) -> None:
        meta = self._existing_meta()
        now = datetime.now(timezone.utc).isoformat()
        meta.setdefault("setId", self.path.stem)
        meta.setdefault("created", now)
        meta.update(
            {
                "total_cards": len(items),
                "lastUpdated": now,
                "sm2Enabled": True,
                "version": STORE_FORMAT_VERSION,
            }
        )
        payload = {
            "meta": meta,
            "cards": [
                CardRecord.from_domain(item).model_dump(mode="json", by_alias=True)
                for item in items
            ],
        }

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

        logger.info(f"Saved {len(items)} items to {self.path}")

    def _read(self) -> Any:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StorageError(f"{self.path} is not valid JSON: {e}") from e

    def _existing_meta(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = self._read()
        except StorageError:
            logger.warning(f"Existing {self.path} is unreadable; rewriting metadata")
            return {}
        if isinstance(raw, dict) and isinstance(raw.get("meta"), dict):
            return dict(raw["meta"])
        return {}
