"""Pytest configuration for all tests."""

from collections.abc import Sequence
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from cosmodb.core.config import Settings
from cosmodb.infrastructure.adapters import MemoryAdapter, StorageAdapter
from cosmodb.infrastructure.persistence import Database


class RecordingAdapter(MemoryAdapter):
    """Memory adapter that records every save and can be told to fail."""

    name = "recording"

    def __init__(self, initial: dict[str, list[dict[str, Any]]] | None = None) -> None:
        super().__init__()
        self._store.update(initial or {})
        self.saves: list[tuple[str, list[dict[str, Any]]]] = []
        self.loads: list[str] = []
        self.fail_load = False
        self.fail_save = False

    async def load(self, collection: str) -> list[dict[str, Any]]:
        self.loads.append(collection)
        if self.fail_load:
            raise RuntimeError("load failed")
        return await super().load(collection)

    async def save(self, collection: str, documents: Sequence[dict[str, Any]]) -> bool:
        if self.fail_save:
            raise RuntimeError("save failed")
        self.saves.append((collection, [dict(doc) for doc in documents]))
        return await super().save(collection, documents)


class FailingAdapter(StorageAdapter):
    """Adapter whose every call raises."""

    name = "failing"

    async def load(self, collection: str) -> list[dict[str, Any]]:
        raise RuntimeError("backend unreachable")

    async def save(self, collection: str, documents: Sequence[dict[str, Any]]) -> bool:
        raise RuntimeError("backend unreachable")


TASK_SCHEMA = {
    "id": {"type": "string", "required": True},
    "text": {"type": "string"},
    "status": {"type": "string", "enum": ["pending", "done"], "default": "pending"},
    "tags": {"type": "array", "default": []},
    "priority": {"type": "number"},
}


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="testing",
        storage_directory=str(tmp_path / "data"),
    )


@pytest.fixture
def recording_adapter() -> RecordingAdapter:
    return RecordingAdapter()


@pytest_asyncio.fixture
async def db(settings: Settings, recording_adapter: RecordingAdapter) -> AsyncGenerator[Database, None]:
    """Database with the task schema and a recording adapter registered."""
    database = Database(settings)
    database.register_adapter("recording", recording_adapter)
    database.register_schema("task", TASK_SCHEMA)
    yield database
    await database.close()


@pytest_asyncio.fixture
async def tasks(db: Database):
    """Loaded task collection backed by the recording adapter."""
    collection = db.create_collection("tasks", adapter="recording", schema="task")
    await collection.wait_until_loaded()
    return collection
