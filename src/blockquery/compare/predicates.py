"""Comparison predicates: verdicts on query results against expected values.

Every predicate has the same shape::

    predicate(result, *expected) -> CompareResult

A failing comparison is a normal outcome reported through
``CompareResult.passed``; only structural misuse raises
:class:`ComparisonError`.

``MISSING`` (the path was not found) is a vacuous pass for every value
predicate.  ``exists`` and the ``*_and_must_exist`` variants are the only
ones that fail on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from blockquery.query.evaluator import Missing
from blockquery.values.convert import ConversionError, convert, structurally_equal
from blockquery.values.model import Kind, ListValue, NullValue, UnknownValue, kind_of
from blockquery.values.render import render_value, render_values

if TYPE_CHECKING:
    from collections.abc import Sequence

    from blockquery.query.evaluator import QueryResult
    from blockquery.values.model import DynamicValue

# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

MSG_DOES_NOT_EXIST = "returned value does not exist but expected"
MSG_EXISTS = "returned value exists but not expected"
MSG_IS_NULL = "returned value is null but not expected to be"
MSG_IS_NOT_NULL = "returned value is not null but expected to be"
MSG_IS_UNKNOWN = "returned value is unknown"
MSG_IS_KNOWN = "returned value is known"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class ComparisonError(Exception):
    """Raised when a predicate is applied to a result it cannot judge."""


@dataclass(frozen=True)
class CompareResult:
    """Verdict of a predicate."""

    passed: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.passed


class Predicate(Protocol):
    def __call__(self, got: QueryResult, *expected: DynamicValue) -> CompareResult: ...


_PASS = CompareResult(True)


def _membership_failure(got: QueryResult, expected: Sequence[DynamicValue]) -> CompareResult:
    rendered = "<missing>" if isinstance(got, Missing) else render_value(got)
    return CompareResult(
        False,
        f"returned value {rendered} not in expected values {render_values(expected)}",
    )


# ---------------------------------------------------------------------------
# Existence
# ---------------------------------------------------------------------------


def exists(got: QueryResult, *_expected: DynamicValue) -> CompareResult:
    """Pass when the queried path exists."""
    if isinstance(got, Missing):
        return CompareResult(False, MSG_DOES_NOT_EXIST)
    return _PASS


def not_exists(got: QueryResult, *_expected: DynamicValue) -> CompareResult:
    """Pass when the queried path does not exist."""
    if not isinstance(got, Missing):
        return CompareResult(False, MSG_EXISTS)
    return _PASS


# ---------------------------------------------------------------------------
# Null / known
# ---------------------------------------------------------------------------


def is_null(got: QueryResult, *_expected: DynamicValue) -> CompareResult:
    if isinstance(got, Missing) or isinstance(got, NullValue):
        return _PASS
    return CompareResult(False, MSG_IS_NOT_NULL)


def is_not_null(got: QueryResult, *_expected: DynamicValue) -> CompareResult:
    if isinstance(got, NullValue):
        return CompareResult(False, MSG_IS_NULL)
    return _PASS


def is_known(got: QueryResult, *_expected: DynamicValue) -> CompareResult:
    if isinstance(got, UnknownValue):
        return CompareResult(False, MSG_IS_UNKNOWN)
    return _PASS


def is_not_known(got: QueryResult, *_expected: DynamicValue) -> CompareResult:
    if isinstance(got, Missing) or isinstance(got, UnknownValue):
        return _PASS
    return CompareResult(False, MSG_IS_KNOWN)


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


def is_one_of(got: QueryResult, *expected: DynamicValue) -> CompareResult:
    """Pass when the result equals at least one expected value."""
    if isinstance(got, Missing):
        return _PASS
    if not compare_results(got, expected):
        return _membership_failure(got, expected)
    return _PASS


def each_is_one_of(got: QueryResult, *expected: DynamicValue) -> CompareResult:
    """Pass when every element of a list result is one of the expected values.

    Use with wildcard queries such as ``rules.#.protocol``.  The failure
    message shows the whole list, not just the offending elements.
    """
    if isinstance(got, Missing):
        return _PASS
    if isinstance(got, UnknownValue) and got.kind in (Kind.LIST, Kind.DYNAMIC):
        return _membership_failure(got, expected)
    if not isinstance(got, ListValue):
        msg = f"expected a list but got {kind_of(got).value}"
        raise ComparisonError(msg)
    if not all(compare_results(item, expected) for item in got.items):
        return _membership_failure(got, expected)
    return _PASS


def is_one_of_and_must_exist(got: QueryResult, *expected: DynamicValue) -> CompareResult:
    if isinstance(got, Missing):
        return CompareResult(False, MSG_DOES_NOT_EXIST)
    if isinstance(got, NullValue):
        return CompareResult(False, MSG_IS_NULL)
    return is_one_of(got, *expected)


def each_is_one_of_and_must_exist(got: QueryResult, *expected: DynamicValue) -> CompareResult:
    if isinstance(got, Missing):
        return CompareResult(False, MSG_DOES_NOT_EXIST)
    if isinstance(got, NullValue):
        return CompareResult(False, MSG_IS_NULL)
    return each_is_one_of(got, *expected)


def compare_results(got: DynamicValue, want: Sequence[DynamicValue]) -> bool:
    """Return True when *got* converts to and equals one of *want*.

    Candidates whose kind *got* cannot convert to are skipped.  Null and
    unknown results never match.
    """
    if isinstance(got, (UnknownValue, NullValue)):
        return False
    for candidate in want:
        try:
            converted = convert(got, kind_of(candidate))
        except ConversionError:
            continue
        if structurally_equal(converted, candidate):
            return True
    return False


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

PREDICATES: dict[str, Predicate] = {
    "exists": exists,
    "not_exists": not_exists,
    "is_null": is_null,
    "is_not_null": is_not_null,
    "is_known": is_known,
    "is_not_known": is_not_known,
    "is_one_of": is_one_of,
    "is_one_of_and_must_exist": is_one_of_and_must_exist,
    "each_is_one_of": each_is_one_of,
    "each_is_one_of_and_must_exist": each_is_one_of_and_must_exist,
}


def get_predicate(name: str) -> Predicate:
    """Look up a predicate by name, raising ``KeyError`` for unknown names."""
    try:
        return PREDICATES[name]
    except KeyError:
        msg = f"unknown predicate '{name}', must be one of {sorted(PREDICATES)}"
        raise KeyError(msg) from None


def predicate_name(predicate: Predicate) -> str:
    """Reverse lookup used when reporting rules."""
    for name, candidate in PREDICATES.items():
        if candidate is predicate:
            return name
    return getattr(predicate, "__name__", repr(predicate))
