"""Shared test fixtures for blockquery."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from blockquery.values import from_native

if TYPE_CHECKING:
    from pathlib import Path

    from blockquery.values import DynamicValue


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a minimal project structure for testing."""
    (tmp_path / ".blockquery").mkdir()
    return tmp_path


@pytest.fixture()
def foo_objects() -> DynamicValue:
    """``{foo: [{bar: [1, 2, 3]}, ...]}`` with three identical elements."""
    return from_native({"foo": [{"bar": [1, 2, 3]} for _ in range(3)]})
