"""Tests for collection loading, saving and syncing through adapters."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from cosmodb.core.events import DatabaseEvent
from cosmodb.infrastructure.adapters import MemoryAdapter
from cosmodb.infrastructure.persistence import Database

from conftest import FailingAdapter, RecordingAdapter


class SlowAdapter(MemoryAdapter):
    """Adapter that yields to the event loop in the middle of every save."""

    name = "slow"

    def __init__(self) -> None:
        super().__init__()
        self.snapshots: list[list[str]] = []

    async def save(self, collection, documents):
        await asyncio.sleep(0.01)
        self.snapshots.append([doc["id"] for doc in documents])
        return await super().save(collection, documents)


class SlowLoadAdapter(MemoryAdapter):
    """Adapter that signals when a load starts and yields before returning."""

    name = "slow_load"

    def __init__(self) -> None:
        super().__init__()
        self.loading = asyncio.Event()

    async def load(self, collection):
        self.loading.set()
        await asyncio.sleep(0.01)
        return await super().load(collection)


class TestLoading:
    """Initial load from the adapter."""

    @pytest.mark.asyncio
    async def test_loads_existing_documents(self, settings):
        adapter = RecordingAdapter({"tasks": [{"id": "a"}, {"id": "b"}]})
        db = Database(settings)
        db.register_adapter("recording", adapter)

        tasks = db.create_collection("tasks", adapter="recording")
        assert not tasks.loaded
        await tasks.wait_until_loaded()

        assert tasks.loaded
        assert adapter.loads == ["tasks"]
        assert [doc["id"] for doc in tasks.find()] == ["a", "b"]
        await db.close()

    @pytest.mark.asyncio
    async def test_non_document_entries_are_skipped(self, settings):
        adapter = RecordingAdapter({"tasks": [{"id": "a"}, "junk", 5]})
        db = Database(settings)
        db.register_adapter("recording", adapter)

        tasks = db.create_collection("tasks", adapter="recording")
        await tasks.wait_until_loaded()

        assert len(tasks) == 1
        await db.close()

    @pytest.mark.asyncio
    async def test_inserts_before_load_are_merged(self, settings):
        adapter = RecordingAdapter({"tasks": [{"id": "stored"}]})
        db = Database(settings)
        db.register_adapter("recording", adapter)

        tasks = db.create_collection("tasks", adapter="recording")
        tasks.insert({"id": "early"})
        await tasks.wait_until_loaded()

        assert [doc["id"] for doc in tasks.find()] == ["stored", "early"]

        await tasks.flush()
        assert [doc["id"] for doc in adapter.saves[-1][1]] == ["stored", "early"]
        await db.close()

    @pytest.mark.asyncio
    async def test_pre_load_insert_with_stored_id_is_reported(self, settings):
        adapter = RecordingAdapter({"tasks": [{"id": "dup", "v": "stored"}]})
        db = Database(settings)
        db.register_adapter("recording", adapter)
        errors = []
        db.on(DatabaseEvent.ERROR, errors.append)

        tasks = db.create_collection("tasks", adapter="recording")
        tasks.insert({"id": "dup", "v": "early"})
        tasks.insert({"id": "fresh"})
        await tasks.wait_until_loaded()

        assert tasks.find() == [{"id": "dup", "v": "stored"}, {"id": "fresh"}]
        assert errors == [
            {
                "collection": "tasks",
                "operation": "load_merge",
                "error": "Duplicate id 'dup' in collection 'tasks'",
            }
        ]
        await db.close()

    @pytest.mark.asyncio
    async def test_load_failure_reports_and_starts_empty(self, settings):
        db = Database(settings)
        db.register_adapter("failing", FailingAdapter())
        errors = []
        db.on(DatabaseEvent.ERROR, errors.append)

        broken = db.create_collection("broken", adapter="failing")
        await broken.wait_until_loaded()

        assert broken.loaded
        assert broken.find() == []
        assert errors == [
            {"collection": "broken", "operation": "load", "error": "backend unreachable"}
        ]
        await db.close()

    def test_load_deferred_without_event_loop(self, settings):
        adapter = RecordingAdapter({"tasks": [{"id": "a"}]})
        db = Database(settings)
        db.register_adapter("recording", adapter)

        tasks = db.create_collection("tasks", adapter="recording")
        tasks.insert({"id": "b"})

        assert not tasks.loaded
        assert tasks.has_pending_writes

        async def finish():
            await tasks.wait_until_loaded()
            return await tasks.flush()

        result = asyncio.run(finish())

        assert result.success is True
        assert not tasks.has_pending_writes
        assert [doc["id"] for doc in adapter.saves[-1][1]] == ["a", "b"]


class TestSaving:
    """Scheduled and explicit saves."""

    @pytest.mark.asyncio
    async def test_mutations_are_persisted(self, tasks, recording_adapter):
        tasks.insert({"id": "a"})
        tasks.insert({"id": "b"})
        tasks.update("a", {"text": "changed"})
        tasks.remove("b")

        result = await tasks.flush()

        assert result.success is True
        assert not tasks.has_pending_writes
        assert recording_adapter.saves[-1] == ("tasks", tasks.find())

    @pytest.mark.asyncio
    async def test_saves_are_serialized_in_mutation_order(self, db):
        slow = SlowAdapter()
        db.register_adapter("slow", slow)
        items = db.create_collection("items", adapter="slow")
        await items.wait_until_loaded()

        items.insert({"id": "a"})
        await asyncio.sleep(0)
        items.insert({"id": "b"})
        items.insert({"id": "c"})

        await items.flush()

        assert slow.snapshots == [["a"], ["a", "b", "c"]]
        assert [doc["id"] for doc in await slow.load("items")] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_explicit_save(self, tasks, recording_adapter):
        tasks.insert({"id": "a"})

        result = await tasks.save()

        assert result.success is True
        assert result.count == 1
        assert recording_adapter.saves[-1][1][0]["id"] == "a"

    @pytest.mark.asyncio
    async def test_save_failure_is_reported_not_raised(self, db, tasks, recording_adapter):
        errors = []
        db.on(DatabaseEvent.ERROR, errors.append)
        recording_adapter.fail_save = True

        stored = tasks.insert({"id": "a"})
        result = await tasks.flush()

        assert stored["id"] == "a"
        assert tasks.find_by_id("a") is not None
        assert result.success is False
        assert result.error == "save failed"
        assert tasks.has_pending_writes
        assert errors[0] == {"collection": "tasks", "operation": "save", "error": "save failed"}

        recording_adapter.fail_save = False
        assert (await tasks.flush()).success is True
        assert not tasks.has_pending_writes

    @pytest.mark.asyncio
    async def test_adapter_exception_is_logged(self, db, tasks, recording_adapter):
        with patch.object(recording_adapter, "save", AsyncMock(side_effect=OSError("disk full"))), \
                patch.object(db, "log") as log:
            result = await tasks.save()

        assert result.success is False
        assert result.error == "disk full"
        log.assert_called_once()
        assert log.call_args.kwargs["level"] == "error"
        assert log.call_args.kwargs["operation"] == "save"


class TestSync:
    """Tests for Collection.sync()."""

    @pytest.mark.asyncio
    async def test_sync_replaces_documents(self, tasks, recording_adapter):
        tasks.insert({"id": "local"})
        await tasks.flush()
        await MemoryAdapter.save(recording_adapter, "tasks", [{"id": "x"}, {"id": "y"}])

        result = await tasks.sync()

        assert result.success is True
        assert result.synced == 2
        assert result.count == 2
        assert result.error is None
        assert [doc["id"] for doc in tasks.find()] == ["x", "y"]
        assert [doc["id"] for doc in recording_adapter.saves[-1][1]] == ["x", "y"]

    @pytest.mark.asyncio
    async def test_sync_load_failure_keeps_documents(self, tasks, recording_adapter):
        tasks.insert({"id": "local"})
        recording_adapter.fail_load = True

        result = await tasks.sync()

        assert result.success is False
        assert result.synced == 0
        assert result.error == "load failed"
        assert tasks.find_by_id("local") is not None

    @pytest.mark.asyncio
    async def test_sync_save_failure(self, tasks, recording_adapter):
        await MemoryAdapter.save(recording_adapter, "tasks", [{"id": "x"}])
        recording_adapter.fail_save = True

        result = await tasks.sync()

        assert result.success is False
        assert result.synced == 1
        assert result.error == "save failed"
        recording_adapter.fail_save = False

    @pytest.mark.asyncio
    async def test_sync_result_to_dict(self, tasks):
        result = await tasks.sync()
        assert result.to_dict() == {"success": True, "synced": 0, "count": 0, "error": None}

    @pytest.mark.asyncio
    async def test_changes_during_sync_load_are_kept(self, db):
        adapter = SlowLoadAdapter()
        await adapter.save("items", [{"id": "a", "v": 1}, {"id": "b"}, {"id": "c"}])
        db.register_adapter("slow_load", adapter)
        items = db.create_collection("items", adapter="slow_load")
        await items.wait_until_loaded()
        await adapter.save("items", [{"id": "a", "v": 1}, {"id": "b"}, {"id": "c"}, {"id": "d"}])

        adapter.loading.clear()
        sync_task = asyncio.create_task(items.sync())
        await adapter.loading.wait()
        items.insert({"id": "n1"})
        items.update("a", {"v": 2})
        items.remove("b")

        result = await sync_task
        await items.flush()

        assert result.success is True
        assert result.synced == 4
        assert [doc["id"] for doc in items.find()] == ["a", "c", "d", "n1"]
        assert items.find_by_id("a")["v"] == 2
        assert await adapter.load("items") == items.find()
        assert not items.has_pending_writes
