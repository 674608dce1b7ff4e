"""Builders that wrap native literals into expected values for predicates.

Builders taking several literals return a list, ready to splat into a
predicate call::

    is_one_of(result, *string_values("Standard_LRS", "Standard_GRS"))
"""

from __future__ import annotations

from typing import Any

from blockquery.values.model import (
    BoolValue,
    DynamicValue,
    Kind,
    ListValue,
    NullValue,
    NumberValue,
    ObjectValue,
    StringValue,
    UnknownValue,
    from_native,
)


def string_values(*vals: str) -> list[DynamicValue]:
    """Expected values of kind string, e.g. ``string_values("a", "b")``."""
    return [StringValue(v) for v in vals]


def number_values(*vals: int | float) -> list[DynamicValue]:
    """Expected values of kind number, e.g. ``number_values(1, 2.5)``."""
    return [NumberValue(v) for v in vals]


def int_values(*vals: int) -> list[DynamicValue]:
    """Expected integral numbers. Rejects floats so typos like ``1.5`` surface."""
    results: list[DynamicValue] = []
    for v in vals:
        if isinstance(v, bool) or not isinstance(v, int):
            msg = f"int_values requires ints, got {type(v).__name__}"
            raise TypeError(msg)
        results.append(NumberValue(v))
    return results


def bool_value(val: bool) -> DynamicValue:
    return BoolValue(val)


def true_value() -> DynamicValue:
    return BoolValue(True)


def false_value() -> DynamicValue:
    return BoolValue(False)


def null_value() -> DynamicValue:
    return NullValue()


def unknown_value(kind: Kind = Kind.DYNAMIC) -> DynamicValue:
    return UnknownValue(kind)


def list_value(*items: DynamicValue) -> DynamicValue:
    """A single list literal built from already-wrapped values.

    ``list_value(*int_values(1, 2, 3))`` expects the list ``[1, 2, 3]``.
    """
    return ListValue(items)


def expected_value(val: Any) -> DynamicValue:
    """Wrap one native literal as an expected value.

    Objects never compare equal, so a candidate that is or contains a mapping
    is rejected with ``TypeError``.
    """
    value = from_native(val)
    if _contains_object(value):
        msg = f"expected values cannot contain objects, got {val!r}"
        raise TypeError(msg)
    return value


def _contains_object(value: DynamicValue) -> bool:
    if isinstance(value, ObjectValue):
        return True
    if isinstance(value, ListValue):
        return any(_contains_object(item) for item in value.items)
    return False


def complex_values(*vals: Any) -> list[DynamicValue]:
    """Expected values for composite literals.

    E.g. to expect the list ``[1, 2, 3]`` use ``complex_values([1, 2, 3])``.
    """
    return [expected_value(v) for v in vals]
