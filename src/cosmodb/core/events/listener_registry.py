"""Listener registry - event subscription and fan-out for the database.

The ListenerRegistry provides:
- Registration of listeners with a collection filter and priority
- Synchronous, fire-and-forget delivery in priority order
- Scheduling of coroutine listeners on the running event loop
- Isolation of listener failures from the emitting operation
"""

import asyncio
import inspect
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from cosmodb.core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[dict[str, Any]], Any]


@dataclass
class RegisteredListener:
    """Internal representation of a registered listener.

    Attributes:
        id: Unique identifier for this registration.
        event: The event this listener is registered for.
        callback: Callable receiving the event payload.
        collection: Only deliver events from this collection (None = all).
        priority: Delivery priority (higher = earlier).
        registration_order: Order in which this listener was registered.
    """

    id: str
    event: str
    callback: Listener
    collection: Optional[str] = None
    priority: int = 0
    registration_order: int = 0


@dataclass
class EmitResult:
    """Outcome of a single emit call.

    Attributes:
        delivered: Number of listeners invoked.
        scheduled: Number of coroutine listeners handed to the event loop.
        errors: Error messages from listeners that raised.
    """

    delivered: int = 0
    scheduled: int = 0
    errors: list[str] = field(default_factory=list)


class ListenerRegistry:
    """Central listener registration and delivery engine.

    Example:
        registry = ListenerRegistry()

        listener_id = registry.register(
            event="insert",
            callback=lambda payload: print(payload["document"]),
            collection="tasks",
        )

        registry.emit("insert", {"collection": "tasks", "document": {...}})

        registry.unregister(listener_id)
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[RegisteredListener]] = {}
        self._listener_map: dict[str, RegisteredListener] = {}
        self._registration_counter: int = 0
        self._pending: set[asyncio.Task[Any]] = set()

    def register(
        self,
        event: str,
        callback: Listener,
        collection: Optional[str] = None,
        priority: int = 0,
    ) -> str:
        """Register a listener for an event.

        Args:
            event: Event name (e.g., "insert").
            callback: Sync or async callable receiving the payload dict.
            collection: Optional collection filter.
            priority: Higher priority listeners run first. Listeners with the
                      same priority run in registration order.

        Returns:
            Unique listener_id string for later removal.
        """
        if not callable(callback):
            raise TypeError("Listener callback must be callable")

        listener_id = f"lsn_{uuid.uuid4().hex[:12]}"
        self._registration_counter += 1

        listener = RegisteredListener(
            id=listener_id,
            event=event,
            callback=callback,
            collection=collection,
            priority=priority,
            registration_order=self._registration_counter,
        )

        self._listeners.setdefault(event, []).append(listener)
        self._listener_map[listener_id] = listener

        logger.debug(
            "Listener registered",
            listener_id=listener_id,
            db_event=event,
            collection=collection,
            priority=priority,
        )

        return listener_id

    def unregister(self, listener_id: str) -> bool:
        """Remove a registered listener.

        Returns:
            True if the listener was removed, False if it was not found.
        """
        listener = self._listener_map.pop(listener_id, None)
        if listener is None:
            logger.warning("Listener not found for unregister", listener_id=listener_id)
            return False

        listeners = self._listeners.get(listener.event, [])
        self._listeners[listener.event] = [item for item in listeners if item.id != listener_id]
        if not self._listeners[listener.event]:
            del self._listeners[listener.event]

        logger.debug("Listener unregistered", listener_id=listener_id, db_event=listener.event)
        return True

    def unregister_callback(self, event: str, callback: Listener) -> int:
        """Remove every registration of ``callback`` for ``event``.

        Returns:
            Number of registrations removed.
        """
        to_remove = [item.id for item in self._listeners.get(event, []) if item.callback == callback]
        for listener_id in to_remove:
            self.unregister(listener_id)
        return len(to_remove)

    def emit(self, event: str, payload: Optional[dict[str, Any]] = None) -> EmitResult:
        """Deliver an event to every matching listener.

        Delivery never raises: listener errors are logged and collected in
        the returned EmitResult.

        Args:
            event: Event name.
            payload: Event payload. The "collection" key, if present, is
                     matched against listener collection filters.

        Returns:
            EmitResult describing the delivery.
        """
        result = EmitResult()
        payload = payload or {}

        matching = self._filter_listeners(self._listeners.get(event, []), payload.get("collection"))
        if not matching:
            return result

        ordered = sorted(matching, key=lambda item: (-item.priority, item.registration_order))

        for listener in ordered:
            try:
                outcome = listener.callback(payload)
                result.delivered += 1
                if inspect.isawaitable(outcome):
                    self._schedule(listener, event, outcome)
                    result.scheduled += 1
            except Exception as e:
                logger.error(
                    "Listener failed",
                    listener_id=listener.id,
                    db_event=event,
                    error=str(e),
                )
                result.errors.append(f"Listener {listener.id} failed: {e}")

        return result

    async def drain(self) -> None:
        """Wait for every scheduled coroutine listener to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, listener: RegisteredListener, event: str, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop for async listener, dropping delivery",
                listener_id=listener.id,
                db_event=event,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        async def run() -> None:
            try:
                await awaitable
            except Exception as e:
                logger.error(
                    "Async listener failed",
                    listener_id=listener.id,
                    db_event=event,
                    error=str(e),
                )

        task = loop.create_task(run())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _filter_listeners(
        self,
        listeners: list[RegisteredListener],
        collection: Optional[str],
    ) -> list[RegisteredListener]:
        """A listener matches if it has no collection filter or the filter equals ``collection``."""
        return [item for item in listeners if item.collection is None or item.collection == collection]

    def get_listeners_for_event(self, event: str) -> list[RegisteredListener]:
        """Get all listeners registered for an event."""
        return self._listeners.get(event, []).copy()

    def get_listener_by_id(self, listener_id: str) -> Optional[RegisteredListener]:
        return self._listener_map.get(listener_id)

    def clear(self) -> int:
        """Remove all registered listeners.

        Returns:
            Number of listeners removed.
        """
        count = len(self._listener_map)
        self._listeners.clear()
        self._listener_map.clear()
        logger.debug("Listeners cleared", count=count)
        return count
