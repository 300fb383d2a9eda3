"""Base abstractions for storage adapters."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

Document = dict[str, Any]


class StorageAdapter(ABC):
    """Abstract base class for storage adapters.

    An adapter persists the full document set of a collection. One adapter
    instance may back many collections, keyed by collection name.
    Loading a collection that was never saved must return an empty list,
    not raise.
    """

    name: str = "adapter"

    @abstractmethod
    async def load(self, collection: str) -> list[Document]:
        """Load every document stored for a collection."""
        ...

    @abstractmethod
    async def save(self, collection: str, documents: Sequence[Document]) -> bool:
        """Replace the stored documents of a collection."""
        ...

    async def remove(self, collection: str) -> bool:
        """Delete everything stored for a collection."""
        await self.save(collection, [])
        return True

    async def clear(self) -> bool:
        """Delete everything stored by this adapter."""
        return False

    async def close(self) -> None:
        """Release any resources held by the adapter."""
        return None
