"""Result objects returned by validation, persistence and analytics.

Persistence failures are reported through these objects rather than
raised, so callers can inspect them without exception handling.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class ValidationIssue:
    """A single schema violation."""

    field: str
    message: str
    code: str


@dataclass
class ValidationResult:
    """Result of validating one document.

    Attributes:
        valid: True if no issues were found.
        issues: Every violation found, in discovery order.
    """

    valid: bool = True
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Human-readable error messages."""
        return [issue.message for issue in self.issues]


@dataclass
class SaveResult:
    """Result of handing a collection's documents to its adapter."""

    success: bool
    count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SyncResult:
    """Result of reloading a collection from its adapter and saving it back.

    Attributes:
        success: Whether the load and the save both succeeded.
        synced: Number of documents loaded from the adapter.
        count: Number of documents saved back.
        error: Error message if anything failed.
    """

    success: bool
    synced: int = 0
    count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QueryAnalyticsRecord:
    """Telemetry for a single query operation.

    Attributes:
        collection: Name of the queried collection.
        operation: Name of the query method: find, find_one or find_by_id.
        query: JSON-serialized query.
        duration: Wall-clock duration in milliseconds.
        result_count: Number of documents returned.
        timestamp: Epoch milliseconds when the query finished.
    """

    collection: str
    operation: str
    query: str
    duration: float
    result_count: int
    timestamp: int

    def to_document(self) -> dict[str, Any]:
        """Document shape stored in the analytics collection."""
        return {
            "collection": self.collection,
            "operation": self.operation,
            "query": self.query,
            "duration": self.duration,
            "result_count": self.result_count,
            "timestamp": self.timestamp,
        }
