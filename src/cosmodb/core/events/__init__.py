"""Event system for database lifecycle notifications.

Example usage:
    from cosmodb.core.events import DatabaseEvent

    @db.events.on_insert("tasks")
    def on_task_created(payload):
        print(payload["document"])

    listener_id = db.on(DatabaseEvent.REMOVE, handle_remove, collection="tasks")
    db.off(listener_id)
"""

from cosmodb.core.events.event_names import (
    EVENT_CATEGORIES,
    DatabaseEvent,
    EventCategory,
    get_all_events,
    is_document_event,
)
from cosmodb.core.events.listener_decorator import ListenerDecorator
from cosmodb.core.events.listener_registry import (
    EmitResult,
    ListenerRegistry,
    RegisteredListener,
)

__all__ = [
    # Registry
    "ListenerRegistry",
    "RegisteredListener",
    "EmitResult",
    # Decorator
    "ListenerDecorator",
    # Events
    "DatabaseEvent",
    "EventCategory",
    "EVENT_CATEGORIES",
    "get_all_events",
    "is_document_event",
]
