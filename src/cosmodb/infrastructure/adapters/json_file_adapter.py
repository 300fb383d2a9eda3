"""JSON file storage adapter.

Stores each collection as ``<directory>/<collection><extension>`` holding a
JSON array of documents. File I/O runs in a worker thread so the event
loop is never blocked.
"""

import asyncio
import json
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from cosmodb.core.exceptions import AdapterError
from cosmodb.core.logging import get_logger
from cosmodb.infrastructure.adapters.base import Document, StorageAdapter

logger = get_logger(__name__)


class JsonFileAdapter(StorageAdapter):
    """Storage adapter backed by one JSON file per collection."""

    name = "file"

    def __init__(self, directory: str | Path = "./cosmo_data", extension: str = ".json") -> None:
        self.directory = Path(directory)
        self.extension = extension

    def _get_file_path(self, collection: str) -> Path:
        if not collection or Path(collection).name != collection or collection in (".", ".."):
            raise AdapterError(f"Invalid collection name for file storage: {collection!r}")
        return self.directory / f"{collection}{self.extension}"

    def _read(self, path: Path) -> list[Document] | None:
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def load(self, collection: str) -> list[Document]:
        """Load a collection file.

        A missing file is an empty collection.

        Raises:
            AdapterError: If the file cannot be read or is not a JSON array.
        """
        path = self._get_file_path(collection)
        try:
            data = await asyncio.to_thread(self._read, path)
        except (OSError, json.JSONDecodeError) as e:
            raise AdapterError(f"Error loading collection {collection}: {e}") from e

        if data is None:
            logger.debug("File not found for collection", collection=collection, path=str(path))
            return []

        if not isinstance(data, list):
            raise AdapterError(f"Collection file for {collection} does not contain a JSON array")

        logger.debug("Loaded collection file", collection=collection, count=len(data))
        return data

    async def save(self, collection: str, documents: Sequence[Document]) -> bool:
        """Atomically replace a collection file.

        Raises:
            AdapterError: If the documents are not JSON-serializable or the
                file cannot be written.
        """
        path = self._get_file_path(collection)
        try:
            payload = json.dumps(list(documents), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise AdapterError(f"Documents of collection {collection} are not JSON-serializable: {e}") from e

        try:
            await asyncio.to_thread(self._write, path, payload)
        except OSError as e:
            raise AdapterError(f"Error saving collection {collection}: {e}") from e

        logger.debug("Saved collection file", collection=collection, count=len(documents))
        return True

    async def remove(self, collection: str) -> bool:
        path = self._get_file_path(collection)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            raise AdapterError(f"Error removing collection {collection}: {e}") from e
        return True

    async def clear(self) -> bool:
        """Remove every collection file in the storage directory."""
        removed = 0
        for name in self.collections():
            await self.remove(name)
            removed += 1
        logger.info("Cleared file storage", directory=str(self.directory), collections=removed)
        return True

    def collections(self) -> list[str]:
        """Names of every collection with a file in the storage directory."""
        if not self.directory.is_dir():
            return []
        return sorted(
            path.name[: -len(self.extension)]
            for path in self.directory.iterdir()
            if path.is_file() and path.name.endswith(self.extension) and not path.name.startswith(".")
        )
