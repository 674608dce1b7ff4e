"""Query error taxonomy.

``QueryNotFoundError`` is soft: rule callers decide whether a missing field
is a finding or a vacuous pass.  Type and index errors are hard and abort the
check that triggered them.
"""

from __future__ import annotations

from blockquery.values.model import Kind


class QueryError(Exception):
    """Base class for errors raised while evaluating a query path."""

    def __init__(self, message: str, *, query: str) -> None:
        super().__init__(message)
        self.query = query


class QueryNotFoundError(QueryError):
    """A field segment named a key the object does not have."""

    def __init__(self, field: str, *, query: str) -> None:
        super().__init__(f"attribute {field} not found in value", query=query)
        self.field = field


class QueryTypeError(QueryError):
    """A segment was applied to a value of the wrong structural kind."""

    def __init__(self, expected: Kind, actual: Kind, segment: str, *, query: str) -> None:
        if expected is Kind.LIST:
            message = (
                f"query segment {segment} is a list operation but value is "
                f"{_article(actual.value)}"
            )
        else:
            message = (
                f"query segment {segment} requires an object but value is "
                f"{_article(actual.value)}"
            )
        super().__init__(message, query=query)
        self.expected = expected
        self.actual = actual
        self.segment = segment


class QueryIndexError(QueryError):
    """An index segment pointed past the end of a list."""

    def __init__(self, index: int, length: int, *, query: str) -> None:
        super().__init__(
            f"index {index} out of bounds for list of length {length}", query=query
        )
        self.index = index
        self.length = length


def _article(word: str) -> str:
    return f"an {word}" if word[:1] in "aeiou" else f"a {word}"
