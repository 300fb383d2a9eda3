"""Domain entities for the document store."""

from cosmodb.domain.entities.results import (
    QueryAnalyticsRecord,
    SaveResult,
    SyncResult,
    ValidationIssue,
    ValidationResult,
)
from cosmodb.domain.entities.schema import FieldSpec, FieldType, Schema

__all__ = [
    "FieldSpec",
    "FieldType",
    "QueryAnalyticsRecord",
    "SaveResult",
    "Schema",
    "SyncResult",
    "ValidationIssue",
    "ValidationResult",
]
