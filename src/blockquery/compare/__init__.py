"""Comparison domain: predicates over query results and their registry."""

from blockquery.compare.predicates import (
    PREDICATES,
    CompareResult,
    ComparisonError,
    Predicate,
    compare_results,
    each_is_one_of,
    each_is_one_of_and_must_exist,
    exists,
    get_predicate,
    is_known,
    is_not_known,
    is_not_null,
    is_null,
    is_one_of,
    is_one_of_and_must_exist,
    not_exists,
    predicate_name,
)

__all__ = [
    "PREDICATES",
    "CompareResult",
    "ComparisonError",
    "Predicate",
    "compare_results",
    "each_is_one_of",
    "each_is_one_of_and_must_exist",
    "exists",
    "get_predicate",
    "is_known",
    "is_not_known",
    "is_not_null",
    "is_null",
    "is_one_of",
    "is_one_of_and_must_exist",
    "not_exists",
    "predicate_name",
]
