# Domain Package
from .errors import DuplicateEntry, InvalidInput, KivocabError, NotFound, StorageError
from .models import (
    CollectionOverview,
    DirectionSetting,
    LearnableItem,
    LearningStats,
    ReviewResult,
    ScheduleState,
    SessionMode,
    StudyDirection,
    VocabularyEntry,
)
from .ports import ItemRepository

__all__ = [
    "CollectionOverview",
    "DirectionSetting",
    "DuplicateEntry",
    "InvalidInput",
    "ItemRepository",
    "KivocabError",
    "LearnableItem",
    "LearningStats",
    "NotFound",
    "ReviewResult",
    "ScheduleState",
    "SessionMode",
    "StorageError",
    "StudyDirection",
    "VocabularyEntry",
]
