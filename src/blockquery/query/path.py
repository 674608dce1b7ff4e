"""Dotted query path segments and the incremental segment parser."""

from __future__ import annotations

from dataclasses import dataclass

WILDCARD_TOKEN = "#"


@dataclass(frozen=True)
class Field:
    """Select the named field of an object."""

    name: str


@dataclass(frozen=True)
class Index:
    """Select one element of a list by non-negative position."""

    position: int


@dataclass(frozen=True)
class Wildcard:
    """Apply the rest of the path to every element of a list."""


Segment = Field | Index | Wildcard


def next_segment(path: str) -> tuple[Segment, str]:
    """Split the first segment off *path*.

    Returns the parsed segment and the unparsed remainder.  The remainder is
    empty when *path* contains no dot.  Never raises: a segment that is
    neither ``#`` nor an ASCII digit string is a field name, so ``-1`` is a
    field, not an index.
    """
    raw, _, remainder = path.partition(".")
    if raw == WILDCARD_TOKEN:
        return Wildcard(), remainder
    if raw.isascii() and raw.isdigit():
        return Index(int(raw)), remainder
    return Field(raw), remainder


def describe(segment: Segment) -> str:
    """Render a segment back into its path form."""
    if isinstance(segment, Wildcard):
        return WILDCARD_TOKEN
    if isinstance(segment, Index):
        return str(segment.position)
    return segment.name
