"""Dynamic value model: the tagged union every query and predicate operates on."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


class Kind(enum.Enum):
    """Structural kind of a dynamic value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    OBJECT = "object"
    DYNAMIC = "dynamic"  # kind not declared (unknown values only)


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NullValue:
    """An explicit null."""


@dataclass(frozen=True, eq=False)
class UnknownValue:
    """A value of *kind* will exist but cannot be resolved yet.

    Carries no payload.  Equality is identity: an unknown value is never
    equal to another unknown value, even one of the same kind.
    """

    kind: Kind = Kind.DYNAMIC


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            msg = f"BoolValue requires a bool, got {type(self.value).__name__}"
            raise TypeError(msg)


@dataclass(frozen=True)
class NumberValue:
    value: int | float

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            msg = f"NumberValue requires an int or float, got {type(self.value).__name__}"
            raise TypeError(msg)

    def is_integral(self) -> bool:
        return isinstance(self.value, int) or self.value.is_integer()


@dataclass(frozen=True)
class StringValue:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            msg = f"StringValue requires a str, got {type(self.value).__name__}"
            raise TypeError(msg)


@dataclass(frozen=True)
class ListValue:
    """An ordered sequence of dynamic values."""

    items: tuple[DynamicValue, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable but always store a tuple.
        object.__setattr__(self, "items", tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class ObjectValue:
    """A mapping from field name to dynamic value.

    The mapping is copied and wrapped read-only on construction, so an object
    cannot change while a query walks it.  Key order is preserved.
    """

    fields: Mapping[str, DynamicValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectValue):
            return NotImplemented
        return dict(self.fields) == dict(other.fields)

    def __hash__(self) -> int:
        return hash(tuple(self.fields.items()))

    def __repr__(self) -> str:
        return f"ObjectValue(fields={dict(self.fields)!r})"


DynamicValue = (
    NullValue
    | UnknownValue
    | BoolValue
    | NumberValue
    | StringValue
    | ListValue
    | ObjectValue
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def kind_of(value: DynamicValue) -> Kind:
    """Return the structural kind of *value* (the declared kind for unknowns)."""
    if isinstance(value, NullValue):
        return Kind.NULL
    if isinstance(value, UnknownValue):
        return value.kind
    if isinstance(value, BoolValue):
        return Kind.BOOL
    if isinstance(value, NumberValue):
        return Kind.NUMBER
    if isinstance(value, StringValue):
        return Kind.STRING
    if isinstance(value, ListValue):
        return Kind.LIST
    if isinstance(value, ObjectValue):
        return Kind.OBJECT
    msg = f"not a dynamic value: {value!r}"
    raise TypeError(msg)


def from_native(obj: Any) -> DynamicValue:
    """Convert a native Python literal tree into a dynamic value.

    Supports ``None``, ``bool``, ``int``, ``float``, ``str``, ``list``/``tuple``
    and ``dict`` with string keys, recursively.  Values that already are
    dynamic values are returned unchanged.
    """
    if obj is None:
        return NullValue()
    # bool before int: bool is a subclass of int
    if isinstance(obj, bool):
        return BoolValue(obj)
    if isinstance(obj, (int, float)):
        return NumberValue(obj)
    if isinstance(obj, str):
        return StringValue(obj)
    if isinstance(obj, (list, tuple)):
        return ListValue(tuple(from_native(item) for item in obj))
    if isinstance(obj, dict):
        fields: dict[str, DynamicValue] = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                msg = f"object keys must be strings, got {type(key).__name__}"
                raise TypeError(msg)
            fields[key] = from_native(item)
        return ObjectValue(fields)
    if isinstance(
        obj,
        (NullValue, UnknownValue, BoolValue, NumberValue, StringValue, ListValue, ObjectValue),
    ):
        return obj
    msg = f"cannot convert {type(obj).__name__} to a dynamic value"
    raise TypeError(msg)


def to_native(value: DynamicValue) -> Any:
    """Convert a dynamic value back into native Python data.

    Raises ``ValueError`` when the tree contains an unknown value.
    """
    if isinstance(value, NullValue):
        return None
    if isinstance(value, UnknownValue):
        msg = f"cannot convert an unknown {value.kind.value} value to native data"
        raise ValueError(msg)
    if isinstance(value, (BoolValue, NumberValue, StringValue)):
        return value.value
    if isinstance(value, ListValue):
        return [to_native(item) for item in value.items]
    if isinstance(value, ObjectValue):
        return {key: to_native(item) for key, item in value.fields.items()}
    msg = f"not a dynamic value: {value!r}"
    raise TypeError(msg)
