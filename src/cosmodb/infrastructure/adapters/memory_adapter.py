"""In-memory storage adapter."""

import copy
from collections.abc import Sequence

from cosmodb.core.logging import get_logger
from cosmodb.infrastructure.adapters.base import Document, StorageAdapter

logger = get_logger(__name__)


class MemoryAdapter(StorageAdapter):
    """Adapter that keeps saved document sets in a process-local dict.

    Documents are deep-copied on save and on load, so the stored state
    never aliases a collection's live documents.
    """

    name = "memory"

    def __init__(self) -> None:
        self._store: dict[str, list[Document]] = {}

    async def load(self, collection: str) -> list[Document]:
        return copy.deepcopy(self._store.get(collection, []))

    async def save(self, collection: str, documents: Sequence[Document]) -> bool:
        self._store[collection] = copy.deepcopy(list(documents))
        logger.debug("Saved documents", adapter=self.name, collection=collection, count=len(documents))
        return True

    async def remove(self, collection: str) -> bool:
        self._store.pop(collection, None)
        return True

    async def clear(self) -> bool:
        self._store.clear()
        return True

    def collections(self) -> list[str]:
        """Names of every collection with saved data."""
        return list(self._store)
