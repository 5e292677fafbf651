"""Exception hierarchy shared by every layer."""


class KivocabError(Exception):
    """Base class for all kivocab errors."""


class InvalidInput(KivocabError, ValueError):
    """A caller-supplied value is outside its allowed range.

    Raised before any state is touched, so no partial update exists.
    """


class NotFound(KivocabError, KeyError):
    """An item addressed by id does not exist in the collection."""

    def __init__(self, item_id: str):
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Item not found: {self.item_id}"


class DuplicateEntry(KivocabError):
    """Another item already uses the same term, reading or romaji."""

    def __init__(self, field: str, value: str, existing_id: str):
        super().__init__(f"Duplicate {field} '{value}' (already used by {existing_id})")
        self.field = field
        self.value = value
        self.existing_id = existing_id


class StorageError(KivocabError):
    """The persistence collaborator failed to load or save the collection."""
