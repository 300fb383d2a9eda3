"""Exceptions raised by the document store.

Only configuration and validation problems are raised to callers.
Lookup misses are plain return values and persistence failures are
reported through result objects.
"""

from collections.abc import Iterable


class CosmoDBError(Exception):
    """Base class for all document store errors."""
    pass


class ConfigurationError(CosmoDBError):
    """Raised when a database or collection is wired up incorrectly."""
    pass


class AdapterNotFoundError(ConfigurationError):
    """Raised when a collection names an adapter that is not registered."""

    def __init__(self, adapter_name: str):
        self.adapter_name = adapter_name
        super().__init__(f"Adapter not found: {adapter_name}")


class CollectionNotFoundError(CosmoDBError):
    """Raised when looking up a collection that was never created."""

    def __init__(self, collection_name: str):
        self.collection_name = collection_name
        super().__init__(f"Collection not found: {collection_name}")


class SchemaDefinitionError(CosmoDBError):
    """Raised when a schema definition cannot be parsed."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(f"{message} (field '{field}')" if field is not None else message)


class DocumentError(CosmoDBError):
    """Base class for errors about a single document."""
    pass


class InvalidDocumentError(DocumentError):
    """Raised when something other than a mapping is inserted."""
    pass


class DocumentValidationError(DocumentError):
    """Raised when a document violates its collection schema.

    Carries every violation found, not just the first one.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid document: {', '.join(self.errors)}")


class DuplicateDocumentIdError(DocumentError):
    """Raised when inserting a document whose id is already stored."""

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"Duplicate id '{document_id}' in collection '{collection}'")


class QueryError(CosmoDBError):
    """Base class for query errors."""
    pass


class InvalidQueryError(QueryError):
    """Raised when a query or its options are malformed."""
    pass


class UnsupportedQueryOperatorError(QueryError):
    """Raised for reserved operator fields when the reject policy is active."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Query operators are not supported: {field}")


class AdapterError(CosmoDBError):
    """Raised by adapters when the backing store cannot be read or written."""
    pass
