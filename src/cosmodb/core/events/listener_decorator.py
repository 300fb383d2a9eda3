"""Decorator API for event listener registration.

Enables the `@db.events.on_insert("tasks")` syntax.
"""

from typing import Any, Callable, Optional, TypeVar

from cosmodb.core.events.event_names import DatabaseEvent
from cosmodb.core.events.listener_registry import ListenerRegistry

F = TypeVar("F", bound=Callable[..., Any])


class ListenerDecorator:
    """Provides decorator syntax for listener registration.

    Example:
        @db.events.on_update("tasks", priority=10)
        def audit_task_change(payload):
            print(payload["old_document"], "->", payload["document"])
    """

    def __init__(self, registry: ListenerRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ListenerRegistry:
        """Get the underlying listener registry."""
        return self._registry

    def on_insert(self, collection: Optional[str] = None, priority: int = 0) -> Callable[[F], F]:
        """Register a listener for document inserts."""
        return self._create_decorator(DatabaseEvent.INSERT, collection, priority)

    def on_update(self, collection: Optional[str] = None, priority: int = 0) -> Callable[[F], F]:
        """Register a listener for document updates."""
        return self._create_decorator(DatabaseEvent.UPDATE, collection, priority)

    def on_remove(self, collection: Optional[str] = None, priority: int = 0) -> Callable[[F], F]:
        """Register a listener for document removals."""
        return self._create_decorator(DatabaseEvent.REMOVE, collection, priority)

    def on_sync(self, priority: int = 0) -> Callable[[F], F]:
        """Register a listener for database-wide syncs."""
        return self._create_decorator(DatabaseEvent.SYNC, None, priority)

    def on_error(self, priority: int = 0) -> Callable[[F], F]:
        """Register a listener for persistence errors."""
        return self._create_decorator(DatabaseEvent.ERROR, None, priority)

    def _create_decorator(
        self,
        event: str,
        collection: Optional[str],
        priority: int,
    ) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            self._registry.register(
                event=event,
                callback=func,
                collection=collection,
                priority=priority,
            )
            return func

        return decorator
