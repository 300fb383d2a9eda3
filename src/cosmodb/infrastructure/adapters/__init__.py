"""Storage adapter implementations."""

from cosmodb.infrastructure.adapters.base import Document, StorageAdapter
from cosmodb.infrastructure.adapters.json_file_adapter import JsonFileAdapter
from cosmodb.infrastructure.adapters.memory_adapter import MemoryAdapter

__all__ = [
    "Document",
    "JsonFileAdapter",
    "MemoryAdapter",
    "StorageAdapter",
]
