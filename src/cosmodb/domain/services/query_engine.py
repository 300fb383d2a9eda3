"""Query engine for equality matching over in-memory documents.

A query is a mapping of field name to expected value. A document matches
when every query field strictly equals the document's value; an empty
query matches every document.

Query options are applied in a fixed order: sort, then skip, then limit,
so pagination is well-defined over a stable ordering.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Literal, Optional

from cosmodb.core.exceptions import InvalidQueryError, UnsupportedQueryOperatorError
from cosmodb.domain.services.value_compare import MISSING, compare_values, strict_equals

OperatorPolicy = Literal["ignore", "reject"]


@dataclass(frozen=True)
class QueryOptions:
    """Sort, skip and limit applied to query results.

    Attributes:
        sort: Field name to direction (1 ascending, -1 descending), applied
            in mapping order.
        skip: Number of leading results to drop.
        limit: Maximum number of results. 0 or None means no limit.
    """

    sort: Mapping[str, int] = field(default_factory=dict)
    skip: int = 0
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.sort, Mapping):
            raise InvalidQueryError("Sort must be a mapping of field to direction")
        for name, direction in self.sort.items():
            if isinstance(direction, bool) or direction not in (1, -1):
                raise InvalidQueryError(f"Invalid sort direction for field {name}: {direction!r}")
        if isinstance(self.skip, bool) or not isinstance(self.skip, int) or self.skip < 0:
            raise InvalidQueryError(f"Skip must be a non-negative integer, got {self.skip!r}")
        if self.limit is not None and (
            isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 0
        ):
            raise InvalidQueryError(f"Limit must be a non-negative integer, got {self.limit!r}")

    @classmethod
    def coerce(cls, options: "QueryOptions | Mapping[str, Any] | None") -> "QueryOptions":
        """Build options from a QueryOptions, a plain mapping, or None."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            raise InvalidQueryError("Query options must be a mapping")

        unknown = set(options) - {"sort", "skip", "limit"}
        if unknown:
            raise InvalidQueryError(f"Unknown query options: {', '.join(sorted(unknown))}")

        return cls(
            sort=dict(options.get("sort") or {}),
            skip=options.get("skip") or 0,
            limit=options.get("limit"),
        )


class QueryEngine:
    """Matches documents against equality queries and applies query options.

    Fields whose name starts with the reserved operator prefix are ignored
    under the "ignore" policy and raise UnsupportedQueryOperatorError under
    the "reject" policy.
    """

    def __init__(self, operator_prefix: str = "$", operator_policy: OperatorPolicy = "ignore"):
        self.operator_prefix = operator_prefix
        self.operator_policy = operator_policy

    def normalize_query(self, query: Mapping[str, Any] | None) -> dict[str, Any]:
        """Validate a query and drop reserved operator fields.

        Raises:
            InvalidQueryError: If the query is not a mapping.
            UnsupportedQueryOperatorError: If a reserved field is present
                and the policy is "reject".
        """
        if query is None:
            return {}
        if not isinstance(query, Mapping):
            raise InvalidQueryError("Query must be a mapping of field to value")

        normalized = {}
        for name, value in query.items():
            if isinstance(name, str) and name.startswith(self.operator_prefix):
                if self.operator_policy == "reject":
                    raise UnsupportedQueryOperatorError(name)
                continue
            normalized[name] = value
        return normalized

    def matches(self, document: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
        """Check a document against an already normalized query."""
        for name, expected in query.items():
            if not strict_equals(document.get(name, MISSING), expected):
                return False
        return True

    def filter(
        self, documents: Iterable[Mapping[str, Any]], query: Mapping[str, Any] | None
    ) -> list[Mapping[str, Any]]:
        """Return matching documents in their original order."""
        normalized = self.normalize_query(query)
        if not normalized:
            return list(documents)
        return [doc for doc in documents if self.matches(doc, normalized)]

    def apply_options(
        self, results: list[Mapping[str, Any]], options: QueryOptions
    ) -> list[Mapping[str, Any]]:
        """Apply sort, skip and limit, in that order, without touching ``results``."""
        processed = list(results)

        if options.sort:
            processed.sort(key=cmp_to_key(lambda a, b: self.compare(a, b, options.sort)))

        if options.skip:
            processed = processed[options.skip:]

        if options.limit:
            processed = processed[: options.limit]

        return processed

    def compare(self, left: Mapping[str, Any], right: Mapping[str, Any], sort: Mapping[str, int]) -> int:
        """Multi-key comparator; the first non-equal key decides."""
        for name, direction in sort.items():
            result = compare_values(left.get(name, MISSING), right.get(name, MISSING))
            if result != 0:
                return result * direction
        return 0

    def execute(
        self,
        documents: Iterable[Mapping[str, Any]],
        query: Mapping[str, Any] | None = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> list[Mapping[str, Any]]:
        """Filter documents and apply options."""
        query_options = QueryOptions.coerce(options)
        return self.apply_options(self.filter(documents, query), query_options)
