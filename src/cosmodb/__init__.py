"""CosmoDB - embedded schema-validating document store.

Collections of dict documents with equality queries, schema defaults and
validation, query analytics, and pluggable async persistence adapters.
"""

__version__ = "0.1.0"

from cosmodb.core.config import Settings, get_settings
from cosmodb.core.events import DatabaseEvent
from cosmodb.core.exceptions import (
    AdapterError,
    AdapterNotFoundError,
    CollectionNotFoundError,
    ConfigurationError,
    CosmoDBError,
    DocumentValidationError,
    DuplicateDocumentIdError,
    InvalidDocumentError,
    InvalidQueryError,
    SchemaDefinitionError,
    UnsupportedQueryOperatorError,
)
from cosmodb.domain.entities import Schema, SaveResult, SyncResult, ValidationResult
from cosmodb.domain.services import QueryOptions
from cosmodb.infrastructure.adapters import JsonFileAdapter, MemoryAdapter, StorageAdapter
from cosmodb.infrastructure.persistence import Collection, Database

__all__ = [
    "__version__",
    "AdapterError",
    "AdapterNotFoundError",
    "Collection",
    "CollectionNotFoundError",
    "ConfigurationError",
    "CosmoDBError",
    "Database",
    "DatabaseEvent",
    "DocumentValidationError",
    "DuplicateDocumentIdError",
    "InvalidDocumentError",
    "InvalidQueryError",
    "JsonFileAdapter",
    "MemoryAdapter",
    "QueryOptions",
    "SaveResult",
    "Schema",
    "SchemaDefinitionError",
    "Settings",
    "StorageAdapter",
    "SyncResult",
    "UnsupportedQueryOperatorError",
    "ValidationResult",
    "get_settings",
]
