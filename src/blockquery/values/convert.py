"""Kind conversion and structural equality for dynamic values."""

from __future__ import annotations

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
    kind_of,
)


class ConversionError(Exception):
    """Raised when a value cannot be converted to the requested kind."""


def convert(value: DynamicValue, kind: Kind) -> DynamicValue:
    """Convert *value* to *kind*.

    Only same-kind conversions succeed and a ``DYNAMIC`` target accepts
    anything.  Scalars never convert across kinds, so the number ``1`` and
    the string ``"1"`` stay distinct.
    """
    if kind is Kind.DYNAMIC:
        return value
    actual = kind_of(value)
    if actual is not kind:
        msg = f"cannot convert {actual.value} to {kind.value}"
        raise ConversionError(msg)
    return value


def structurally_equal(left: DynamicValue, right: DynamicValue) -> bool:
    """Compare two values by kind and recursive content.

    Objects and unknown values never compare equal here.
    """
    if isinstance(left, UnknownValue) or isinstance(right, UnknownValue):
        return False
    if isinstance(left, NullValue):
        return isinstance(right, NullValue)
    if isinstance(left, (BoolValue, NumberValue, StringValue)):
        return type(left) is type(right) and left.value == right.value  # type: ignore[union-attr]
    if isinstance(left, ListValue):
        if not isinstance(right, ListValue) or len(left) != len(right):
            return False
        return all(structurally_equal(a, b) for a, b in zip(left.items, right.items))
    if isinstance(left, ObjectValue):
        return False
    msg = f"not a dynamic value: {left!r}"
    raise TypeError(msg)
