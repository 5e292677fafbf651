from datetime import datetime, timedelta, timezone

import pytest

from kivocab.domain.models import LearnableItem, ScheduleState, VocabularyEntry

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_item(
    item_id: str = "v1",
    term: str | None = None,
    translation: str | None = None,
    reading: str = "",
    romaji: str = "",
    **schedule,
) -> LearnableItem:
    """Build an item; keyword arguments go to ScheduleState."""
    return LearnableItem(
        id=item_id,
        entry=VocabularyEntry(
            term=term or f"term-{item_id}",
            translation=translation or f"translation-{item_id}",
            reading=reading,
            romaji=romaji,
        ),
        schedule=ScheduleState(**schedule),
    )


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config and data files from the real user directory
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "KIVOCAB_DATA_FILE",
        "KIVOCAB_SESSION_SIZE",
        "KIVOCAB_DIRECTION",
        "KIVOCAB_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "vocabulary.json"
