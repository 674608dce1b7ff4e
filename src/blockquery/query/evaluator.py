"""Path query evaluator: resolve a dotted path against a dynamic value.

Paths are consumed one segment at a time::

    evaluate(body, "properties.networkAcls.ipRules.#.value")

``#`` applies the rest of the path to every element of a list and gathers the
results into a new list, in order.  Reaching an unknown value stops the walk
and returns that unknown value, whatever the rest of the path says.
"""

from __future__ import annotations

from blockquery.query.errors import QueryIndexError, QueryNotFoundError, QueryTypeError
from blockquery.query.path import Field, Index, Wildcard, describe, next_segment
from blockquery.values.model import (
    DynamicValue,
    Kind,
    ListValue,
    ObjectValue,
    UnknownValue,
    kind_of,
)


class Missing:
    """Sentinel for a query result whose path does not exist."""

    _instance: Missing | None = None

    def __new__(cls) -> Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = Missing()

QueryResult = DynamicValue | Missing


def evaluate(root: DynamicValue, path: str) -> DynamicValue:
    """Resolve *path* against *root*.

    An empty path returns *root* unchanged.

    Raises
    ------
    QueryNotFoundError
        A field segment names a key the object lacks.
    QueryTypeError
        A segment meets a value of the wrong structural kind.
    QueryIndexError
        An index segment is past the end of the list.
    """
    if isinstance(root, UnknownValue) or path == "":
        return root
    return _resolve(root, path, path)


def evaluate_optional(root: DynamicValue, path: str) -> QueryResult:
    """Like :func:`evaluate`, but return ``MISSING`` for an absent field.

    Type and index errors still raise.
    """
    try:
        return evaluate(root, path)
    except QueryNotFoundError:
        return MISSING


def _resolve(value: DynamicValue, path: str, query: str) -> DynamicValue:
    # Each call consumes exactly one segment, so recursion depth is bounded
    # by the number of segments.
    if isinstance(value, UnknownValue):
        return value

    segment, remainder = next_segment(path)

    if isinstance(segment, Field):
        if not isinstance(value, ObjectValue):
            raise QueryTypeError(Kind.OBJECT, kind_of(value), segment.name, query=query)
        if segment.name not in value.fields:
            raise QueryNotFoundError(segment.name, query=query)
        child = value.fields[segment.name]
        return _resolve(child, remainder, query) if remainder else child

    if not isinstance(value, ListValue):
        raise QueryTypeError(Kind.LIST, kind_of(value), describe(segment), query=query)

    if isinstance(segment, Index):
        if segment.position >= len(value):
            raise QueryIndexError(segment.position, len(value), query=query)
        child = value.items[segment.position]
        return _resolve(child, remainder, query) if remainder else child

    if isinstance(segment, Wildcard):
        if not remainder:
            return ListValue(value.items)
        return ListValue(tuple(_resolve(item, remainder, query) for item in value.items))

    msg = f"unhandled query segment: {segment!r}"
    raise TypeError(msg)
