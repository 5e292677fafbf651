"""
Ports (interfaces) for vocabulary persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import LearnableItem


class ItemRepository(ABC):
    """
    Port for loading and saving the vocabulary collection.

    Implementations:
        - JsonItemRepository: A single JSON file on disk.
    """

    @abstractmethod
    def load_all(self) -> list[LearnableItem]:
        """
        Load the full collection.

        Returns:
            Every stored item, in stored order. Empty if nothing is stored yet.

        Raises:
            StorageError: The backing store could not be read.
        """
        pass

    @abstractmethod
    def save_all(self, items: list[LearnableItem]) -> None:
        """
        Replace the stored collection with ``items``.

        Raises:
            StorageError: The backing store could not be written.
        """
        pass
