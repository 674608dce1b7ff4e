"""Query domain: path parsing, evaluation, and query errors."""

from blockquery.query.errors import (
    QueryError,
    QueryIndexError,
    QueryNotFoundError,
    QueryTypeError,
)
from blockquery.query.evaluator import (
    MISSING,
    Missing,
    QueryResult,
    evaluate,
    evaluate_optional,
)
from blockquery.query.path import Field, Index, Segment, Wildcard, next_segment

__all__ = [
    "MISSING",
    "Field",
    "Index",
    "Missing",
    "QueryError",
    "QueryIndexError",
    "QueryNotFoundError",
    "QueryResult",
    "QueryTypeError",
    "Segment",
    "Wildcard",
    "evaluate",
    "evaluate_optional",
    "next_segment",
]
