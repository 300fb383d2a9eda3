"""Domain services for the document store.

Services contain the pure logic of validation, defaults and querying.
They have no dependencies on adapters or the event loop.
"""

from cosmodb.domain.services.document_validator import DocumentValidator, runtime_type_name
from cosmodb.domain.services.id_generator import DocumentIdGenerator
from cosmodb.domain.services.query_engine import QueryEngine, QueryOptions
from cosmodb.domain.services.value_compare import MISSING, compare_values, strict_equals

__all__ = [
    "DocumentIdGenerator",
    "DocumentValidator",
    "MISSING",
    "QueryEngine",
    "QueryOptions",
    "compare_values",
    "runtime_type_name",
    "strict_equals",
]
