"""
Vocabulary Service: application layer orchestrator.

Keeps the collection in memory, applies CRUD and rating updates, and writes
every change through the ItemRepository port.
"""

import logging
from dataclasses import replace
from datetime import datetime

from ulid import ULID

from kivocab.application.scheduler import (
    apply_review,
    get_learning_stats,
    get_overview,
    reset_schedule,
    utcnow,
)
from kivocab.domain.constants import ITEM_ID_PREFIX
from kivocab.domain.errors import DuplicateEntry, NotFound
from kivocab.domain.models import (
    CollectionOverview,
    LearnableItem,
    LearningStats,
    VocabularyEntry,
)
from kivocab.domain.ports import ItemRepository

logger = logging.getLogger(__name__)

# Fields that must be unique across the collection when non-empty.
UNIQUE_FIELDS = ("term", "reading", "romaji")
SEARCH_FIELDS = ("term", "reading", "romaji", "translation", "example")


def generate_item_id() -> str:
    """Generate a stable item ID using ULID."""
    return f"{ITEM_ID_PREFIX}{ULID()}"


class VocabularyService:
    """
    Application service for managing the vocabulary collection.

    Follows Dependency Inversion: depends on the ItemRepository abstraction,
    not a concrete store. Save failures propagate as StorageError; the
    in-memory collection keeps the change so the caller can retry the save.
    """

    def __init__(self, repo: ItemRepository):
        self._repo = repo
        self._items: list[LearnableItem] | None = None

    @property
    def items(self) -> list[LearnableItem]:
        return list(self._collection())

    def reload(self) -> list[LearnableItem]:
        items = self._repo.load_all()
        self._items = items
        logger.debug(f"Loaded {len(items)} items")
        return items

    def save(self) -> None:
        """Write the in-memory collection through the repository."""
        self._repo.save_all(list(self._collection()))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, item_id: str) -> LearnableItem:
        return self._collection()[self._index_of(item_id)]

    def search(self, query: str) -> list[LearnableItem]:
        """Case-insensitive substring search over every text field."""
        needle = query.strip().casefold()
        if not needle:
            return self.items
        return [item for item in self._collection() if _matches(item.entry, needle)]

    def find_duplicate(
        self, entry: VocabularyEntry, exclude_id: str | None = None
    ) -> tuple[str, str, str] | None:
        """
        Find another item sharing a term, reading or romaji with ``entry``.

        Returns:
            (field, value, existing_id) for the first clash, or None.
        """
        for item in self._collection():
            if item.id == exclude_id:
                continue
            for name in UNIQUE_FIELDS:
                value = getattr(entry, name)
                if value and value == getattr(item.entry, name):
                    return name, value, item.id
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, entry: VocabularyEntry) -> LearnableItem:
        """Add a new entry with a fresh schedule."""
        self._check_duplicate(entry)
        item = LearnableItem(id=generate_item_id(), entry=entry, schedule=reset_schedule())
        self._items = self.items + [item]
        logger.info(f"Added {item.id} ({entry.term})")
        self.save()
        return item

    def update(self, item_id: str, entry: VocabularyEntry) -> LearnableItem:
        """Replace the content of an item, keeping its schedule."""
        index = self._index_of(item_id)
        self._check_duplicate(entry, exclude_id=item_id)
        items = self.items
        items[index] = replace(items[index], entry=entry)
        self._items = items
        logger.info(f"Updated {item_id}")
        self.save()
        return items[index]

    def delete(self, item_id: str) -> LearnableItem:
        index = self._index_of(item_id)
        items = self.items
        removed = items.pop(index)
        self._items = items
        logger.info(f"Deleted {item_id}")
        self.save()
        return removed

    def upsert(self, item: LearnableItem) -> LearnableItem:
        """Store ``item`` in place of the item with the same id."""
        index = self._index_of(item.id)
        items = self.items
        items[index] = item
        self._items = items
        self.save()
        return item

    def record_rating(
        self, item_id: str, quality: int, now: datetime | None = None
    ) -> LearnableItem:
        """Apply one review to an item and persist it."""
        item = self.get(item_id)
        updated = item.with_schedule(apply_review(item.schedule, quality, now))
        logger.debug(
            f"Rated {item_id} q={quality}: interval={updated.schedule.interval} "
            f"ease={updated.schedule.ease_factor}"
        )
        return self.upsert(updated)

    def reset(self, item_id: str) -> LearnableItem:
        """Forget all progress on an item."""
        item = self.get(item_id)
        logger.info(f"Reset schedule of {item_id}")
        return self.upsert(item.with_schedule(reset_schedule()))

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def learning_stats(self, now: datetime | None = None) -> LearningStats:
        return get_learning_stats(self._collection(), now or utcnow())

    def overview(self, now: datetime | None = None) -> CollectionOverview:
        return get_overview(self._collection(), now or utcnow())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collection(self) -> list[LearnableItem]:
        if self._items is None:
            return self.reload()
        return self._items

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._collection()):
            if item.id == item_id:
                return index
        raise NotFound(item_id)

    def _check_duplicate(self, entry: VocabularyEntry, exclude_id: str | None = None) -> None:
        clash = self.find_duplicate(entry, exclude_id=exclude_id)
        if clash:
            raise DuplicateEntry(*clash)


def _matches(entry: VocabularyEntry, needle: str) -> bool:
    for name in SEARCH_FIELDS:
        value = getattr(entry, name)
        if value and needle in value.casefold():
            return True
    return False
