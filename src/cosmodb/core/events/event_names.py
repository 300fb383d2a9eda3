"""Database event definitions and categories.

Document events are emitted by collections after a successful mutation.
Database events are emitted by the database itself.
"""


class EventCategory:
    """Categories for organizing events."""

    DOCUMENT_OPERATIONS = "document_operations"
    DATABASE_LIFECYCLE = "database_lifecycle"


class DatabaseEvent:
    """Event names.

    Document event payloads:
    - insert: {"collection", "document"}
    - update: {"collection", "document", "old_document"}
    - remove: {"collection", "document"}
    """

    # Document Operations
    INSERT = "insert"
    UPDATE = "update"
    REMOVE = "remove"

    # Database Lifecycle
    SYNC = "sync"
    ERROR = "error"
    CLOSE = "close"


EVENT_CATEGORIES: dict[str, str] = {
    DatabaseEvent.INSERT: EventCategory.DOCUMENT_OPERATIONS,
    DatabaseEvent.UPDATE: EventCategory.DOCUMENT_OPERATIONS,
    DatabaseEvent.REMOVE: EventCategory.DOCUMENT_OPERATIONS,
    DatabaseEvent.SYNC: EventCategory.DATABASE_LIFECYCLE,
    DatabaseEvent.ERROR: EventCategory.DATABASE_LIFECYCLE,
    DatabaseEvent.CLOSE: EventCategory.DATABASE_LIFECYCLE,
}


def get_all_events() -> list[str]:
    """Get all available event names."""
    return [
        value
        for name, value in vars(DatabaseEvent).items()
        if not name.startswith("_") and isinstance(value, str)
    ]


def is_document_event(event: str) -> bool:
    """Check if an event is emitted for a single document mutation."""
    return EVENT_CATEGORIES.get(event) == EventCategory.DOCUMENT_OPERATIONS
