# Infrastructure Adapters Package
from .json_store import JsonItemRepository

__all__ = ["JsonItemRepository"]
