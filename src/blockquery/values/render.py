"""Deterministic rendering of dynamic values for diagnostic messages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blockquery.values.model import (
    BoolValue,
    ListValue,
    NullValue,
    NumberValue,
    ObjectValue,
    StringValue,
    UnknownValue,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from blockquery.values.model import DynamicValue


def render_value(value: DynamicValue) -> str:
    """Render a single value.

    Booleans render as ``true``/``false``, integral numbers without a decimal
    point, other numbers in fixed notation, strings verbatim, and lists as
    ``[a, b, c]``.
    """
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, NumberValue):
        if value.is_integral():
            return f"{int(value.value)}"
        return f"{value.value:f}"
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, ListValue):
        return render_values(value.items)
    if isinstance(value, ObjectValue):
        inner = ", ".join(f"{key}: {render_value(item)}" for key, item in value.fields.items())
        return "{" + inner + "}"
    if isinstance(value, NullValue):
        return "null"
    if isinstance(value, UnknownValue):
        return "unknown"
    msg = f"not a dynamic value: {value!r}"
    raise TypeError(msg)


def render_values(values: Iterable[DynamicValue]) -> str:
    """Render a sequence of values as a bracketed list in the given order."""
    return "[" + ", ".join(render_value(v) for v in values) + "]"
