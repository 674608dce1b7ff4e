"""Source domain: source trees and Terraform JSON block extraction."""

from blockquery.source.blocks import (
    DEFAULT_INCLUDE,
    Attribute,
    Block,
    BlockExtractor,
    BlockFetcher,
    SourceError,
    SourceRange,
    json_to_value,
    string_to_value,
)
from blockquery.source.tree import LocalSourceTree, MemorySourceTree, SourceTree, path_matches

__all__ = [
    "DEFAULT_INCLUDE",
    "Attribute",
    "Block",
    "BlockExtractor",
    "BlockFetcher",
    "LocalSourceTree",
    "MemorySourceTree",
    "SourceError",
    "SourceRange",
    "SourceTree",
    "json_to_value",
    "path_matches",
    "string_to_value",
]
