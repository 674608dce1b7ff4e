"""Source trees: where configuration files are read from.

The extractor receives a tree explicitly, so tests can hand it an in-memory
tree instead of patching the filesystem.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence


class SourceTree(Protocol):
    """Read-only view over a tree of source files addressed by relative path."""

    def iter_files(self, include: Sequence[str], exclude: Sequence[str] = ()) -> Iterator[str]:
        """Yield sorted relative POSIX paths matching *include* but not *exclude*."""
        ...

    def read_text(self, path: str) -> str: ...


def path_matches(path: str, patterns: Sequence[str]) -> bool:
    """Match *path* against glob patterns.

    ``**/`` also matches zero directories, so ``**/*.tf.json`` matches
    ``main.tf.json`` at the root.
    """
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatch(path, pattern[3:]):
            return True
    return False


class LocalSourceTree:
    """Files under a directory on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def iter_files(self, include: Sequence[str], exclude: Sequence[str] = ()) -> Iterator[str]:
        found: list[str] = []
        for file_path in self.root.rglob("*"):
            if not file_path.is_file():
                continue
            rel = file_path.relative_to(self.root).as_posix()
            if path_matches(rel, include) and not path_matches(rel, exclude):
                found.append(rel)
        yield from sorted(found)

    def read_text(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"LocalSourceTree({str(self.root)!r})"


class MemorySourceTree:
    """Files held in a dict of relative path to content."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files = dict(files)

    def iter_files(self, include: Sequence[str], exclude: Sequence[str] = ()) -> Iterator[str]:
        for path in sorted(self._files):
            if path_matches(path, include) and not path_matches(path, exclude):
                yield path

    def read_text(self, path: str) -> str:
        try:
            return self._files[path]
        except KeyError:
            msg = f"No such file in source tree: {path}"
            raise FileNotFoundError(msg) from None
