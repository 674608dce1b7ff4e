"""Dynamic values: model, conversion, rendering, literal builders."""

from blockquery.values.convert import ConversionError, convert, structurally_equal
from blockquery.values.literals import (
    bool_value,
    complex_values,
    expected_value,
    false_value,
    int_values,
    list_value,
    null_value,
    number_values,
    string_values,
    true_value,
    unknown_value,
)
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
    kind_of,
    to_native,
)
from blockquery.values.render import render_value, render_values

__all__ = [
    "BoolValue",
    "ConversionError",
    "DynamicValue",
    "Kind",
    "ListValue",
    "NullValue",
    "NumberValue",
    "ObjectValue",
    "StringValue",
    "UnknownValue",
    "bool_value",
    "complex_values",
    "convert",
    "expected_value",
    "false_value",
    "from_native",
    "int_values",
    "kind_of",
    "list_value",
    "null_value",
    "number_values",
    "render_value",
    "render_values",
    "string_values",
    "structurally_equal",
    "to_native",
    "true_value",
    "unknown_value",
]
