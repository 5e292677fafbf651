"""
Repository Factory
Centralizes the logic for building the persistence collaborator.
"""

from kivocab.application.config import AppConfig
from kivocab.application.vocabulary_service import VocabularyService
from kivocab.domain.ports import ItemRepository
from kivocab.infrastructure.json_store import JsonItemRepository


def get_repository(config: AppConfig) -> ItemRepository:
    """
    Returns the ItemRepository implementation for the configured data file.
    """
    return JsonItemRepository(config.data_file)


def get_vocabulary_service(config: AppConfig) -> VocabularyService:
    return VocabularyService(get_repository(config))
