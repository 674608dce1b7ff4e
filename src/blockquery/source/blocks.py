"""Block extraction from Terraform JSON configuration (``*.tf.json``).

A Terraform JSON file nests blocks by type and labels::

    {"resource": {"azapi_resource": {"storage": {"type": "...", "body": {...}}}}}

The extractor walks that nesting for one block type, keeps blocks whose first
label matches, and converts the requested attributes into dynamic values.
Interpolation templates are not evaluated: a string holding ``${...}`` or
``%{...}`` becomes an unknown value.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from blockquery.values.model import (
    DynamicValue,
    Kind,
    ListValue,
    ObjectValue,
    StringValue,
    UnknownValue,
    from_native,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from blockquery.source.tree import SourceTree

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE: tuple[str, ...] = ("**/*.tf.json",)
COMMENT_KEY = "//"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SourceError(Exception):
    """Raised when a source file cannot be read or parsed."""

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceRange:
    """Location of a block or attribute in a source file."""

    filename: str
    line: int | None = None

    def __str__(self) -> str:
        if self.line is None:
            return self.filename
        return f"{self.filename}:{self.line}"


@dataclass(frozen=True)
class Attribute:
    name: str
    value: DynamicValue
    range: SourceRange


@dataclass(frozen=True)
class Block:
    """One configuration block with the attributes that were requested."""

    block_type: str
    labels: tuple[str, ...]
    attributes: Mapping[str, Attribute] = field(default_factory=dict)
    def_range: SourceRange = field(default_factory=lambda: SourceRange(""))

    @property
    def address(self) -> str:
        return ".".join(self.labels) if self.labels else self.block_type


class BlockFetcher(Protocol):
    """What to fetch: block type, first label, label names, attribute names."""

    @property
    def block_type(self) -> str: ...

    @property
    def label_one(self) -> str: ...

    @property
    def label_names(self) -> tuple[str, ...]: ...

    @property
    def attribute_names(self) -> tuple[str, ...]: ...


# ---------------------------------------------------------------------------
# JSON values
# ---------------------------------------------------------------------------


def _unescape_literal(text: str) -> str | None:
    """Return the literal text of *text*, or None when it holds a template.

    ``$${`` and ``%%{`` are escapes for literal ``${`` and ``%{``.
    """
    out: list[str] = []
    i = 0
    while i < len(text):
        if text.startswith(("$${", "%%{"), i):
            out.append(text[i + 1 : i + 3])
            i += 3
            continue
        if text.startswith(("${", "%{"), i):
            return None
        out.append(text[i])
        i += 1
    return "".join(out)


def string_to_value(text: str) -> DynamicValue:
    """Convert a JSON string, treating interpolation templates as unknown."""
    literal = _unescape_literal(text)
    if literal is not None:
        return StringValue(literal)
    # A lone interpolation can yield any kind; anything else renders a string.
    if text.startswith("${") and text.endswith("}") and text.count("${") == 1:
        return UnknownValue(Kind.DYNAMIC)
    return UnknownValue(Kind.STRING)


def json_to_value(data: Any) -> DynamicValue:
    """Convert decoded JSON (or YAML) into a dynamic value.

    Raises ``TypeError`` for object keys that are not strings and for
    unsupported scalars.
    """
    if isinstance(data, str):
        return string_to_value(data)
    if isinstance(data, list):
        return ListValue(tuple(json_to_value(item) for item in data))
    if isinstance(data, dict):
        fields: dict[str, DynamicValue] = {}
        for key, item in data.items():
            if not isinstance(key, str):
                msg = f"object keys must be strings, got {type(key).__name__}"
                raise TypeError(msg)
            fields[key] = json_to_value(item)
        return ObjectValue(fields)
    return from_native(data)


# ---------------------------------------------------------------------------
# Source positions
# ---------------------------------------------------------------------------

_DECODER = json.JSONDecoder()
_WHITESPACE = re.compile(r"[ \t\n\r]*")


def _skip_ws(text: str, pos: int) -> int:
    match = _WHITESPACE.match(text, pos)
    return match.end() if match is not None else pos


def _members(text: str, pos: int) -> dict[str, tuple[int, int]]:
    """Map each key of the JSON object at *pos* to ``(key_pos, value_pos)``.

    *text* must already be valid JSON.  A repeated key keeps its last
    position, matching what ``json.loads`` keeps.
    """
    found: dict[str, tuple[int, int]] = {}
    pos = _skip_ws(text, pos + 1)
    while text[pos] == '"':
        key, end = json.decoder.scanstring(text, pos + 1)
        value_pos = _skip_ws(text, _skip_ws(text, end) + 1)
        found[key] = (pos, value_pos)
        _, end = _DECODER.raw_decode(text, value_pos)
        pos = _skip_ws(text, end)
        if text[pos] == ",":
            pos = _skip_ws(text, pos + 1)
    return found


def _elements(text: str, pos: int) -> list[int]:
    """Start positions of the elements of the JSON array at *pos*."""
    found: list[int] = []
    pos = _skip_ws(text, pos + 1)
    while text[pos] != "]":
        found.append(pos)
        _, end = _DECODER.raw_decode(text, pos)
        pos = _skip_ws(text, end)
        if text[pos] == ",":
            pos = _skip_ws(text, pos + 1)
    return found


def _line_of(text: str, pos: int) -> int:
    return text.count("\n", 0, pos) + 1


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class BlockExtractor:
    """Fetch blocks from every matching file of a source tree.

    Files are decoded once and cached, so several rules can share one
    extractor.
    """

    def __init__(
        self,
        tree: SourceTree,
        *,
        include: Sequence[str] = DEFAULT_INCLUDE,
        exclude: Sequence[str] = (),
    ) -> None:
        self.tree = tree
        self.include = tuple(include)
        self.exclude = tuple(exclude)
        self._documents: dict[str, tuple[str, Any]] | None = None

    def files(self) -> list[str]:
        """Relative paths of the source files this extractor reads."""
        return list(self._load())

    def fetch_blocks(self, fetcher: BlockFetcher) -> list[Block]:
        """Return blocks of ``fetcher.block_type`` whose first label matches."""
        blocks: list[Block] = []
        for filename, (text, data) in self._load().items():
            if not isinstance(data, dict) or fetcher.block_type not in data:
                continue
            key_pos, value_pos = _members(text, _skip_ws(text, 0))[fetcher.block_type]
            node = _Node(data[fetcher.block_type], value_pos, key_pos)
            for labels, body in _walk_labels(text, node, len(fetcher.label_names)):
                if fetcher.label_names and (not labels or labels[0] != fetcher.label_one):
                    continue
                blocks.append(self._build_block(fetcher, filename, text, labels, body))
        logger.debug(
            "Fetched %d %s block(s) labelled %s",
            len(blocks),
            fetcher.block_type,
            fetcher.label_one,
        )
        return blocks

    def _build_block(
        self,
        fetcher: BlockFetcher,
        filename: str,
        text: str,
        labels: tuple[str, ...],
        body: _Node,
    ) -> Block:
        positions = _members(text, body.pos)
        attributes: dict[str, Attribute] = {}
        for name in fetcher.attribute_names:
            if name not in body.data or name == COMMENT_KEY:
                continue
            attributes[name] = Attribute(
                name=name,
                value=json_to_value(body.data[name]),
                range=SourceRange(filename, _line_of(text, positions[name][0])),
            )
        return Block(
            block_type=fetcher.block_type,
            labels=labels,
            attributes=attributes,
            def_range=SourceRange(filename, _line_of(text, body.key_pos)),
        )

    def _load(self) -> dict[str, tuple[str, Any]]:
        if self._documents is None:
            documents: dict[str, tuple[str, Any]] = {}
            for path in self.tree.iter_files(self.include, self.exclude):
                try:
                    text = self.tree.read_text(path)
                except (OSError, UnicodeDecodeError) as exc:
                    raise SourceError(path, f"cannot read file: {exc}") from exc
                try:
                    documents[path] = (text, json.loads(text))
                except json.JSONDecodeError as exc:
                    raise SourceError(path, f"invalid JSON: {exc}") from exc
            self._documents = documents
        return self._documents


@dataclass(frozen=True)
class _Node:
    """A decoded JSON value with the position of its text and of its key."""

    data: Any
    pos: int
    key_pos: int


def _walk_labels(text: str, node: _Node, depth: int) -> Iterator[tuple[tuple[str, ...], _Node]]:
    """Yield ``(labels, body)`` pairs found *depth* label levels below *node*.

    Terraform JSON allows a list of objects wherever an object is expected,
    so lists are flattened at every level.  A body's ``key_pos`` is the
    position of its last label key.
    """
    if isinstance(node.data, list):
        for item, pos in zip(node.data, _elements(text, node.pos)):
            yield from _walk_labels(text, _Node(item, pos, node.key_pos), depth)
        return
    if not isinstance(node.data, dict):
        return
    if depth == 0:
        yield (), node
        return
    positions = _members(text, node.pos)
    for label, child in node.data.items():
        if label == COMMENT_KEY:
            continue
        key_pos, value_pos = positions[label]
        for labels, body in _walk_labels(text, _Node(child, value_pos, key_pos), depth - 1):
            yield (label, *labels), body
