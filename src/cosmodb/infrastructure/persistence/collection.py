"""Collection engine: an ordered, schema-validated document set.

A Collection holds the documents of one logical name in memory, validates
them against an optional schema, answers equality queries and persists
the full document set through its adapter.

All public CRUD and query methods are synchronous and operate on the
in-memory documents. Only adapter calls are asynchronous: mutations
schedule a save on the running event loop and return immediately.

Saves are serialized per collection. Every mutation bumps a version
counter; a queued save whose version has already been persisted by a
later snapshot is skipped, so the adapter always receives snapshots in
mutation order.
"""

import asyncio
import copy
import json
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from cosmodb.core.events import DatabaseEvent
from cosmodb.core.exceptions import (
    AdapterNotFoundError,
    ConfigurationError,
    DocumentValidationError,
    DuplicateDocumentIdError,
    InvalidDocumentError,
)
from cosmodb.core.logging import get_logger
from cosmodb.domain.entities import (
    QueryAnalyticsRecord,
    SaveResult,
    Schema,
    SyncResult,
    ValidationResult,
)
from cosmodb.domain.services import (
    DocumentIdGenerator,
    DocumentValidator,
    QueryEngine,
    QueryOptions,
)

if TYPE_CHECKING:
    from cosmodb.infrastructure.adapters import StorageAdapter
    from cosmodb.infrastructure.persistence.database import Database

logger = get_logger(__name__)

Document = dict[str, Any]


class Collection:
    """A named set of documents bound to one adapter and an optional schema.

    Args:
        name: Collection name, unique within its database.
        database: Owning database, used for adapter/schema lookup, event
            emission and logging.
        adapter: Name of a registered adapter. Defaults to the database's
            default adapter.
        schema: Name of a registered schema. An unknown name is logged and
            the collection runs without a schema.
        validate_schema: Whether inserts and updates are validated.

    Raises:
        ConfigurationError: If the name is empty.
        AdapterNotFoundError: If the adapter is not registered.

    Example:
        tasks = db.create_collection("tasks", schema="task")
        await tasks.wait_until_loaded()

        task = tasks.insert({"text": "write docs"})
        tasks.update(task["id"], {"status": "done"})
        tasks.find({"status": "done"}, {"sort": {"text": 1}, "limit": 10})
    """

    def __init__(
        self,
        name: str,
        database: "Database",
        adapter: Optional[str] = None,
        schema: Optional[str] = None,
        validate_schema: Optional[bool] = None,
    ) -> None:
        if not name or not isinstance(name, str):
            raise ConfigurationError("Collection name is required")

        settings = database.settings

        self.name = name
        self.database = database
        self.adapter_name = adapter or settings.default_adapter
        self.schema_name = schema
        self.validate_schema = settings.validate_schema if validate_schema is None else validate_schema
        self.enforce_unique_ids = settings.enforce_unique_ids

        self._logger = logger.bind(collection=name)
        self._documents: list[Document] = []
        self._engine = QueryEngine(
            operator_prefix=settings.reserved_operator_prefix,
            operator_policy=settings.reserved_operator_policy,
        )

        self._version = 0
        self._persisted_version = 0
        self._write_lock = asyncio.Lock()
        self._pending_saves: set[asyncio.Task[SaveResult]] = set()
        self._loaded = False
        self._load_task: Optional[asyncio.Task[None]] = None

        resolved_adapter = database.adapters.get(self.adapter_name)
        if resolved_adapter is None:
            raise AdapterNotFoundError(self.adapter_name)
        self.adapter: "StorageAdapter" = resolved_adapter

        self.schema: Optional[Schema] = None
        if schema:
            self.schema = database.schemas.get(schema)
            if self.schema is None:
                self._logger.warning("Schema not found, collection is schema-less", schema=schema)

        self._start_load()

    def __repr__(self) -> str:
        return f"Collection(name={self.name!r}, adapter={self.adapter_name!r}, documents={len(self)})"

    def __len__(self) -> int:
        return len(self._documents)

    @property
    def loaded(self) -> bool:
        """Whether the initial load from the adapter has completed."""
        return self._loaded

    @property
    def documents(self) -> list[Document]:
        """Copies of every stored document, in insertion order."""
        return copy.deepcopy(self._documents)

    @property
    def has_pending_writes(self) -> bool:
        return self._persisted_version < self._version

    # =========================================================================
    # Loading and persistence
    # =========================================================================

    def _start_load(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug("No running event loop, load deferred")
            return
        self._load_task = loop.create_task(self._initial_load())

    async def wait_until_loaded(self) -> None:
        """Wait for the initial load from the adapter.

        Starts the load if the collection was created outside an event loop.
        """
        if self._loaded:
            return
        if self._load_task is None:
            self._load_task = asyncio.get_running_loop().create_task(self._initial_load())
        await self._load_task

    async def _initial_load(self) -> None:
        async with self._write_lock:
            try:
                loaded = await self._load_documents()
            except Exception:
                loaded = []

            pending = self._documents
            if pending:
                known_ids = {doc.get("id") for doc in loaded}
                kept = [doc for doc in pending if doc.get("id") not in known_ids]
                dropped = [doc.get("id") for doc in pending if doc.get("id") in known_ids]
                self._documents = loaded + kept
                self._logger.info(
                    "Merged documents inserted before load completed",
                    loaded=len(loaded),
                    kept=len(kept),
                )
                if dropped:
                    self._report_persistence_error(
                        "load_merge",
                        DuplicateDocumentIdError(self.name, ", ".join(str(doc_id) for doc_id in dropped)),
                    )
            else:
                self._documents = loaded

            self._loaded = True

        if pending:
            self._schedule_save()

    async def _load_documents(self) -> list[Document]:
        """Load documents from the adapter.

        Failures are logged through the database and re-raised.
        """
        try:
            data = await self.adapter.load(self.name)
        except Exception as e:
            self._report_persistence_error("load", e)
            raise

        if not isinstance(data, list):
            data = []

        documents = []
        for item in data:
            if isinstance(item, Mapping):
                documents.append(dict(item))
            else:
                self._logger.warning("Skipping non-document entry from adapter", entry_type=type(item).__name__)

        self.database.log("Loaded documents", collection=self.name, count=len(documents))
        return documents

    def _schedule_save(self) -> None:
        self._version += 1
        version = self._version

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug("No running event loop, save deferred until flush", version=version)
            return

        task = loop.create_task(self._save_version(version))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save_version(self, version: int) -> SaveResult:
        async with self._write_lock:
            if self._persisted_version >= version:
                return SaveResult(success=True, count=len(self._documents))
            return await self._write_snapshot()

    async def _write_snapshot(self) -> SaveResult:
        """Hand the current document sequence to the adapter. Caller holds the write lock."""
        version = self._version
        snapshot = list(self._documents)

        try:
            await self.adapter.save(self.name, snapshot)
        except Exception as e:
            self._report_persistence_error("save", e)
            return SaveResult(success=False, error=str(e))

        self._persisted_version = max(self._persisted_version, version)
        self.database.log("Saved documents", collection=self.name, count=len(snapshot))
        return SaveResult(success=True, count=len(snapshot))

    def _report_persistence_error(self, operation: str, error: Exception) -> None:
        self.database.log(
            f"Error during {operation} for collection {self.name}",
            level="error",
            collection=self.name,
            operation=operation,
            error=str(error),
        )
        self.database.emit(
            DatabaseEvent.ERROR,
            {"collection": self.name, "operation": operation, "error": str(error)},
        )

    async def save(self) -> SaveResult:
        """Persist the current documents now.

        Returns:
            SaveResult. Adapter failures are reported, never raised.
        """
        await self.wait_until_loaded()
        async with self._write_lock:
            return await self._write_snapshot()

    async def flush(self) -> SaveResult:
        """Wait for scheduled saves, then persist anything still unsaved."""
        await self.wait_until_loaded()
        while self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

        if self.has_pending_writes:
            return await self.save()
        return SaveResult(success=True, count=len(self._documents))

    async def sync(self) -> SyncResult:
        """Reload documents from the adapter and save them straight back.

        The in-memory documents are replaced by what the adapter returns.
        Mutations made while the load was in flight are kept: inserted and
        updated documents win over the loaded copy with the same id, and
        removed ids stay removed. Holds the write lock, so scheduled saves
        queue behind it.

        Returns:
            SyncResult. Adapter failures are reported, never raised.
        """
        await self.wait_until_loaded()
        async with self._write_lock:
            version_before = self._version
            before = {id(doc): doc for doc in self._documents}
            try:
                loaded = await self._load_documents()
            except Exception as e:
                return SyncResult(success=False, synced=0, error=str(e))

            synced = len(loaded)
            if self._version != version_before:
                loaded = self._merge_changes_since(loaded, before)

            self._documents = loaded
            self._version += 1
            save_result = await self._write_snapshot()

        return SyncResult(
            success=save_result.success,
            synced=synced,
            count=save_result.count,
            error=save_result.error,
        )

    def _merge_changes_since(self, loaded: list[Document], before: dict[int, Document]) -> list[Document]:
        """Overlay documents changed after ``before`` was taken onto ``loaded``.

        ``before`` maps ``id()`` to the document objects present when the
        load started. Inserts and updates always store a new object, so any
        document missing from it was written during the load.
        """
        current_ids = {doc.get("id") for doc in self._documents}
        removed = {doc.get("id") for doc in before.values()} - current_ids
        changed = [doc for doc in self._documents if id(doc) not in before]
        changed_by_id = {doc.get("id"): doc for doc in changed}

        merged = []
        for doc in loaded:
            doc_id = doc.get("id")
            if doc_id in removed:
                continue
            merged.append(changed_by_id.pop(doc_id, doc))
        merged.extend(doc for doc in changed if changed_by_id.pop(doc.get("id"), None) is not None)

        self._logger.warning(
            "Kept changes made while sync was loading",
            changed=len(changed),
            removed=len(removed),
        )
        return merged

    # =========================================================================
    # Validation
    # =========================================================================

    def apply_defaults(self, document: Mapping[str, Any]) -> Document:
        """Return a copy of ``document`` with schema defaults applied."""
        return DocumentValidator.apply_defaults(document, self.schema)

    def validate(self, document: Mapping[str, Any]) -> ValidationResult:
        """Validate a document against this collection's schema.

        Always valid when the collection has no schema or validation is disabled.
        """
        if not self.validate_schema:
            return ValidationResult(valid=True)
        return DocumentValidator.validate(document, self.schema)

    # =========================================================================
    # CRUD
    # =========================================================================

    def _index_of(self, document_id: Any) -> int:
        for index, doc in enumerate(self._documents):
            if doc.get("id") == document_id:
                return index
        return -1

    def insert(self, document: Mapping[str, Any]) -> Document:
        """Insert a document.

        Defaults are applied first, then an id is generated if none was
        given, then the document is validated.

        Returns:
            A copy of the stored document.

        Raises:
            InvalidDocumentError: If ``document`` is not a mapping.
            DocumentValidationError: If the document violates the schema.
            DuplicateDocumentIdError: If the id is already stored and
                unique ids are enforced.
        """
        if not isinstance(document, Mapping):
            raise InvalidDocumentError("Document must be a mapping")

        new_doc = self.apply_defaults(copy.deepcopy(dict(document)))

        if new_doc.get("id") in (None, ""):
            new_doc["id"] = DocumentIdGenerator.generate()

        validation = self.validate(new_doc)
        if not validation.valid:
            raise DocumentValidationError(validation.errors)

        if self.enforce_unique_ids and self._index_of(new_doc["id"]) != -1:
            raise DuplicateDocumentIdError(self.name, str(new_doc["id"]))

        self._documents.append(new_doc)
        self._schedule_save()

        self.database.emit(
            DatabaseEvent.INSERT,
            {"collection": self.name, "document": copy.deepcopy(new_doc)},
        )

        return copy.deepcopy(new_doc)

    def update(self, document_id: Any, patch: Mapping[str, Any]) -> Optional[Document]:
        """Shallow-merge ``patch`` over a stored document.

        The stored id is always kept, even if ``patch`` carries another one.

        Returns:
            A copy of the merged document, or None if no document has this id.

        Raises:
            InvalidDocumentError: If ``patch`` is not a mapping.
            DocumentValidationError: If the merged document violates the schema.
        """
        if not isinstance(patch, Mapping):
            raise InvalidDocumentError("Update must be a mapping")

        index = self._index_of(document_id)
        if index == -1:
            return None

        old_doc = self._documents[index]
        new_doc = {**old_doc, **copy.deepcopy(dict(patch)), "id": old_doc["id"]}

        validation = self.validate(new_doc)
        if not validation.valid:
            raise DocumentValidationError(validation.errors)

        self._documents[index] = new_doc
        self._schedule_save()

        self.database.emit(
            DatabaseEvent.UPDATE,
            {
                "collection": self.name,
                "document": copy.deepcopy(new_doc),
                "old_document": copy.deepcopy(old_doc),
            },
        )

        return copy.deepcopy(new_doc)

    def remove(self, document_id: Any) -> bool:
        """Remove a document by id.

        Returns:
            True if a document was removed, False if no document has this id.
        """
        index = self._index_of(document_id)
        if index == -1:
            return False

        doc = self._documents.pop(index)
        self._schedule_save()

        self.database.emit(
            DatabaseEvent.REMOVE,
            {"collection": self.name, "document": copy.deepcopy(doc)},
        )

        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def find(
        self,
        query: Optional[Mapping[str, Any]] = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> list[Document]:
        """Find every matching document.

        Args:
            query: Field to expected value. Empty or None matches everything.
            options: ``{"sort": {field: 1 | -1}, "skip": n, "limit": n}``.

        Returns:
            Copies of the matching documents.
        """
        start = time.perf_counter()
        results = self._engine.execute(self._documents, query, options)
        duration = (time.perf_counter() - start) * 1000

        self._record_query_analytics("find", query, duration, len(results))
        return copy.deepcopy(results)

    def find_one(
        self,
        query: Optional[Mapping[str, Any]] = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> Optional[Document]:
        """Find the first matching document, after options are applied."""
        start = time.perf_counter()
        if options is None:
            normalized = self._engine.normalize_query(query)
            result = next(
                (doc for doc in self._documents if self._engine.matches(doc, normalized)),
                None,
            )
        else:
            results = self._engine.execute(self._documents, query, options)
            result = results[0] if results else None
        duration = (time.perf_counter() - start) * 1000

        self._record_query_analytics("find_one", query, duration, 1 if result is not None else 0)
        return copy.deepcopy(result)

    def find_by_id(self, document_id: Any) -> Optional[Document]:
        """Find a document by id."""
        start = time.perf_counter()
        index = self._index_of(document_id)
        result = self._documents[index] if index != -1 else None
        duration = (time.perf_counter() - start) * 1000

        self._record_query_analytics("find_by_id", {"id": document_id}, duration, 1 if result is not None else 0)
        return copy.deepcopy(result)

    def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        """Count matching documents. Not recorded in query analytics."""
        return len(self._engine.filter(self._documents, query))

    def _record_query_analytics(
        self,
        operation: str,
        query: Optional[Mapping[str, Any]],
        duration: float,
        result_count: int,
    ) -> None:
        settings = self.database.settings
        if not settings.query_analytics_enabled or self.name == settings.query_analytics_collection:
            return

        try:
            record = QueryAnalyticsRecord(
                collection=self.name,
                operation=operation,
                query=json.dumps(dict(query or {}), default=str),
                duration=duration,
                result_count=result_count,
                timestamp=time.time_ns() // 1_000_000,
            )
            self.database.get_query_analytics_collection().insert(record.to_document())
        except Exception as e:
            self.database.log(
                "Error recording query analytics",
                level="warning",
                collection=self.name,
                operation=operation,
                error=str(e),
            )
