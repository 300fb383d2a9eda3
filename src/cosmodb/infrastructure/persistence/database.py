"""Database registry: named adapters, schemas and collections.

The Database is an explicit object handed to every Collection it creates.
Collections use it to resolve their adapter and schema, to emit document
events and to log; they never store data in it.
"""

import asyncio
import dataclasses
from collections.abc import Mapping
from typing import Any, Callable, Optional

from cosmodb.core.config import Settings, get_settings
from cosmodb.core.events import (
    DatabaseEvent,
    EmitResult,
    ListenerDecorator,
    ListenerRegistry,
    get_all_events,
    is_document_event,
)
from cosmodb.core.exceptions import CollectionNotFoundError
from cosmodb.core.logging import LoggingContext, get_logger
from cosmodb.domain.entities import Schema, SyncResult
from cosmodb.infrastructure.adapters import JsonFileAdapter, MemoryAdapter, StorageAdapter
from cosmodb.infrastructure.persistence.collection import Collection

logger = get_logger(__name__)

# Marker for "use the schema registered under the collection's own name, if any"
SCHEMA_FROM_NAME: Any = object()

LOG_LEVELS = frozenset({"debug", "info", "warning", "error", "critical"})


class Database:
    """Registry of adapters, schemas and collections with event fan-out.

    Args:
        settings: Settings instance. Defaults to the cached environment settings.
        register_builtin_adapters: Register the "memory" and "file" adapters.

    Example:
        async with Database() as db:
            db.register_schema("task", {
                "id": {"type": "string", "required": True},
                "status": {"type": "string", "enum": ["pending", "done"], "default": "pending"},
            })
            tasks = db.create_collection("tasks", schema="task")
            await tasks.wait_until_loaded()

            @db.events.on_insert("tasks")
            def announce(payload):
                print("created", payload["document"]["id"])

            tasks.insert({"text": "x"})
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        register_builtin_adapters: bool = True,
    ) -> None:
        self.settings = settings or get_settings()
        self.adapters: dict[str, StorageAdapter] = {}
        self.schemas: dict[str, Schema] = {}
        self.collections: dict[str, Collection] = {}
        self.listeners = ListenerRegistry()
        self.events = ListenerDecorator(self.listeners)
        self.closed = False
        self._auto_sync_task: Optional[asyncio.Task[None]] = None
        self._logger = logger.bind(database=self.settings.app_name)

        if register_builtin_adapters:
            self._register_builtin_adapters()

        if self.settings.auto_sync:
            self.start_auto_sync()

    def _register_builtin_adapters(self) -> None:
        self.register_adapter(MemoryAdapter.name, MemoryAdapter())
        self.register_adapter(
            JsonFileAdapter.name,
            JsonFileAdapter(
                directory=self.settings.storage_directory,
                extension=self.settings.file_extension,
            ),
        )

    async def __aenter__(self) -> "Database":
        if self.settings.auto_sync and not self.auto_sync_running:
            self.start_auto_sync()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # =========================================================================
    # Registration
    # =========================================================================

    def register_adapter(self, name: str, adapter: StorageAdapter) -> "Database":
        """Register an adapter under a name.

        Any object with async ``load(name)`` and ``save(name, documents)``
        methods is accepted.

        Returns:
            This database, for chaining.
        """
        if not name or adapter is None:
            raise ValueError("Adapter name and instance are required")
        if not callable(getattr(adapter, "load", None)) or not callable(getattr(adapter, "save", None)):
            raise TypeError(f"Adapter '{name}' must provide load() and save()")

        self.adapters[name] = adapter
        self._logger.debug("Registered adapter", adapter=name)
        return self

    def register_schema(self, name: str, schema: Schema | Mapping[str, Any]) -> "Database":
        """Register a schema under a name.

        Args:
            name: Schema name.
            schema: A Schema, or a ``{field: descriptor}`` mapping to parse.

        Returns:
            This database, for chaining.

        Raises:
            SchemaDefinitionError: If a mapping definition is invalid.
        """
        if not name or schema is None:
            raise ValueError("Schema name and definition are required")

        if isinstance(schema, Schema):
            parsed = schema if schema.name == name else dataclasses.replace(schema, name=name)
        else:
            parsed = Schema.from_dict(name, schema)

        self.schemas[name] = parsed
        self._logger.debug("Registered schema", schema=name, fields=list(parsed.fields))
        return self

    # =========================================================================
    # Collections
    # =========================================================================

    def create_collection(
        self,
        name: str,
        adapter: Optional[str] = None,
        schema: Optional[str] = SCHEMA_FROM_NAME,
        validate_schema: Optional[bool] = None,
    ) -> Collection:
        """Create a collection, or return the existing one with this name.

        Args:
            name: Collection name.
            adapter: Adapter name. Defaults to ``settings.default_adapter``.
            schema: Schema name. By default the schema registered under the
                collection's name is used when there is one. Pass None for a
                schema-less collection.
            validate_schema: Overrides ``settings.validate_schema``.

        Raises:
            AdapterNotFoundError: If the adapter is not registered.
        """
        existing = self.collections.get(name)
        if existing is not None:
            return existing

        if schema is SCHEMA_FROM_NAME:
            schema = name if name in self.schemas else None

        collection = Collection(
            name,
            self,
            adapter=adapter,
            schema=schema,
            validate_schema=validate_schema,
        )
        self.collections[name] = collection
        self._logger.info(
            "Created collection",
            collection=name,
            adapter=collection.adapter_name,
            schema=collection.schema.name if collection.schema else None,
        )
        return collection

    def get_collection(self, name: str) -> Collection:
        """Get a collection by name.

        Raises:
            CollectionNotFoundError: If no collection has this name.
        """
        collection = self.collections.get(name)
        if collection is None:
            raise CollectionNotFoundError(name)
        return collection

    def has_collection(self, name: str) -> bool:
        return name in self.collections

    def get_query_analytics_collection(self) -> Collection:
        """Get the query analytics sink, creating it on first use.

        The sink is schema-less and backed by the memory adapter.
        """
        name = self.settings.query_analytics_collection
        try:
            return self.get_collection(name)
        except CollectionNotFoundError:
            return self.create_collection(name, adapter=MemoryAdapter.name, schema=None, validate_schema=False)

    # =========================================================================
    # Events and logging
    # =========================================================================

    def on(
        self,
        event: str,
        listener: Callable[[dict[str, Any]], Any],
        collection: Optional[str] = None,
        priority: int = 0,
    ) -> str:
        """Subscribe to an event.

        Returns:
            Listener id for ``off()``.
        """
        if event not in get_all_events():
            self._logger.warning("Subscribing to an event that is never emitted", event=event)
        elif collection is not None and not is_document_event(event) and event != DatabaseEvent.ERROR:
            # sync and close payloads carry no collection
            self._logger.warning("Collection filter never matches this event", event=event, collection=collection)
        return self.listeners.register(event, listener, collection=collection, priority=priority)

    def off(self, listener: str | Callable[[dict[str, Any]], Any], event: Optional[str] = None) -> bool:
        """Unsubscribe by listener id, or by callback and event name."""
        if isinstance(listener, str):
            return self.listeners.unregister(listener)
        if event is None:
            raise ValueError("event is required when unsubscribing by callback")
        return self.listeners.unregister_callback(event, listener) > 0

    def emit(self, event: str, payload: Optional[dict[str, Any]] = None) -> EmitResult:
        """Deliver an event to subscribers. Never raises."""
        return self.listeners.emit(event, payload)

    def log(self, message: str, level: str = "debug", **fields: Any) -> None:
        """Logging hook used by collections."""
        method = level if level in LOG_LEVELS else "info"
        getattr(self._logger, method)(message, **fields)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def sync(self) -> dict[str, SyncResult]:
        """Sync every collection with its adapter.

        Returns:
            Sync result per collection name.
        """
        self._logger.info("Syncing all collections", count=len(self.collections))

        results: dict[str, SyncResult] = {}
        for name, collection in list(self.collections.items()):
            with LoggingContext(operation="sync", collection=name):
                try:
                    results[name] = await collection.sync()
                except Exception as e:
                    self._logger.error("Error syncing collection", error=str(e))
                    results[name] = SyncResult(success=False, error=str(e))

        self.emit(DatabaseEvent.SYNC, {name: result.to_dict() for name, result in results.items()})
        return results

    @property
    def auto_sync_running(self) -> bool:
        return self._auto_sync_task is not None and not self._auto_sync_task.done()

    def start_auto_sync(self, interval: Optional[float] = None) -> bool:
        """Run ``sync()`` every ``interval`` seconds in a background task.

        Defaults to ``settings.sync_interval``. Replaces a running auto-sync.
        Outside an event loop nothing starts and False is returned; entering
        the database as an async context manager starts it later.
        """
        interval = self.settings.sync_interval if interval is None else interval
        if interval <= 0:
            raise ValueError("Sync interval must be greater than 0")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug("No running event loop, auto-sync deferred")
            return False

        if self._auto_sync_task is not None:
            self._auto_sync_task.cancel()

        async def auto_sync() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.sync()
                except Exception as e:
                    self._logger.error("Auto-sync error", error=str(e))

        self._auto_sync_task = loop.create_task(auto_sync())
        self._logger.info("Auto-sync enabled", interval=interval)
        return True

    async def stop_auto_sync(self) -> None:
        """Cancel the auto-sync task and wait for it to finish."""
        task, self._auto_sync_task = self._auto_sync_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def flush(self) -> None:
        """Wait until every collection has persisted its latest state."""
        for collection in list(self.collections.values()):
            await collection.flush()
        await self.listeners.drain()

    async def close(self) -> bool:
        """Close the database.

        Stops auto-sync, syncs when ``settings.sync_on_close`` is set, then flushes
        pending saves, closes adapters and forgets all collections.

        Returns:
            True on success, False if anything failed.
        """
        if self.closed:
            return True

        try:
            self._logger.info("Closing database")
            await self.stop_auto_sync()

            if self.settings.sync_on_close:
                await self.sync()

            await self.flush()

            for name, adapter in self.adapters.items():
                close = getattr(adapter, "close", None)
                if callable(close):
                    await close()
                    self._logger.debug("Closed adapter", adapter=name)

            self.collections.clear()
            self.closed = True
            self.emit(DatabaseEvent.CLOSE, {})
            self._logger.info("Database closed")
            return True
        except Exception as e:
            self._logger.error("Error closing database", error=str(e))
            return False
