"""Tests for query analytics recording."""

import json
from unittest.mock import patch

import pytest

from cosmodb.domain.entities import QueryAnalyticsRecord
from cosmodb.infrastructure.persistence import Database


class TestQueryAnalytics:
    """Every find, find_one and find_by_id leaves a record in the sink."""

    @pytest.mark.asyncio
    async def test_records_each_query_operation(self, db, tasks):
        tasks.insert({"id": "t1", "text": "a"})
        tasks.insert({"id": "t2", "text": "b"})
        assert not db.has_collection("query_analytics")

        tasks.find({"text": "a"})
        tasks.find_one({"text": "b"})
        tasks.find_by_id("missing")

        records = db.get_collection("query_analytics").find()

        assert [r["operation"] for r in records] == ["find", "find_one", "find_by_id"]
        assert [r["result_count"] for r in records] == [1, 1, 0]
        assert [json.loads(r["query"]) for r in records] == [
            {"text": "a"},
            {"text": "b"},
            {"id": "missing"},
        ]
        for record in records:
            assert record["collection"] == "tasks"
            assert record["duration"] >= 0
            assert isinstance(record["timestamp"], int)
            assert record["id"]

    @pytest.mark.asyncio
    async def test_sink_does_not_record_itself(self, db, tasks):
        tasks.find()
        sink = db.get_query_analytics_collection()

        sink.find()
        sink.find_one({"operation": "find"})

        assert sink.count() == 1

    @pytest.mark.asyncio
    async def test_sink_is_schema_less_memory_collection(self, db, tasks):
        sink = db.get_query_analytics_collection()

        assert sink.adapter_name == "memory"
        assert sink.schema is None
        assert db.get_query_analytics_collection() is sink

    @pytest.mark.asyncio
    async def test_count_is_not_recorded(self, db, tasks):
        tasks.count({"text": "a"})
        assert not db.has_collection("query_analytics")

    @pytest.mark.asyncio
    async def test_disabled(self, settings, recording_adapter):
        db = Database(settings.model_copy(update={"query_analytics_enabled": False}))
        db.register_adapter("recording", recording_adapter)
        notes = db.create_collection("notes", adapter="recording")
        await notes.wait_until_loaded()

        notes.find()
        notes.find_by_id("x")

        assert not db.has_collection("query_analytics")
        await db.close()

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_affect_query(self, db, tasks):
        tasks.insert({"id": "t1"})

        with patch.object(db, "get_query_analytics_collection", side_effect=RuntimeError("sink down")):
            results = tasks.find({"id": "t1"})

        assert [doc["id"] for doc in results] == ["t1"]

    @pytest.mark.asyncio
    async def test_sink_save_failure_does_not_affect_query(self, db, tasks):
        db.register_adapter("memory", _BrokenMemory())
        tasks.insert({"id": "t1"})

        assert tasks.find_one({"id": "t1"})["id"] == "t1"
        await db.flush()
        assert tasks.find_by_id("t1") is not None

    @pytest.mark.asyncio
    async def test_custom_sink_name(self, settings):
        db = Database(settings.model_copy(update={"query_analytics_collection": "audit"}))
        notes = db.create_collection("notes")
        await notes.wait_until_loaded()

        notes.find()

        assert db.get_collection("audit").count({"collection": "notes"}) == 1
        await db.close()


class _BrokenMemory:
    name = "memory"

    async def load(self, collection):
        return []

    async def save(self, collection, documents):
        raise RuntimeError("memory full")


def test_record_document_shape():
    record = QueryAnalyticsRecord(
        collection="tasks",
        operation="find",
        query="{}",
        duration=0.5,
        result_count=3,
        timestamp=1760781234567,
    )

    assert record.to_document() == {
        "collection": "tasks",
        "operation": "find",
        "query": "{}",
        "duration": 0.5,
        "result_count": 3,
        "timestamp": 1760781234567,
    }
