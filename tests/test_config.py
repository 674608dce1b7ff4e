"""Tests for blockquery.config: .blockquery/config.yml loading."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from blockquery.config import (
    DEFAULT_EXCLUDE,
    DEFAULT_RULES_PATH,
    LintConfig,
    load_config,
)
from blockquery.source import DEFAULT_INCLUDE

if TYPE_CHECKING:
    import pytest


def _write_config(project: Path, content: str) -> None:
    (project / ".blockquery" / "config.yml").write_text(content, encoding="utf-8")


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_project: Path) -> None:
        config = load_config(tmp_project)
        assert config == LintConfig()
        assert config.rules_path == DEFAULT_RULES_PATH
        assert config.include == DEFAULT_INCLUDE
        assert config.exclude == DEFAULT_EXCLUDE

    def test_all_keys(self, tmp_project: Path) -> None:
        _write_config(
            tmp_project,
            "rules: policy/rules.yml\n"
            "include: ['infra/**/*.tf.json']\n"
            "exclude:\n"
            "  - 'infra/generated/**'\n",
        )
        config = load_config(tmp_project)
        assert config.rules_path == Path("policy/rules.yml")
        assert config.include == ("infra/**/*.tf.json",)
        assert config.exclude == ("infra/generated/**",)

    def test_single_string_pattern(self, tmp_project: Path) -> None:
        _write_config(tmp_project, "include: '*.tf.json'\n")
        assert load_config(tmp_project).include == ("*.tf.json",)

    def test_invalid_values_fall_back(
        self, tmp_project: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        _write_config(tmp_project, "rules: 3\ninclude: [1, 2]\n")
        with caplog.at_level("WARNING", logger="blockquery.config"):
            config = load_config(tmp_project)
        assert config.rules_path == DEFAULT_RULES_PATH
        assert config.include == DEFAULT_INCLUDE
        assert "'rules' must be a path string" in caplog.text
        assert "'include' must be a string or list of strings" in caplog.text

    def test_invalid_yaml_falls_back(self, tmp_project: Path) -> None:
        _write_config(tmp_project, "include: [\n")
        assert load_config(tmp_project) == LintConfig()

    def test_non_mapping_falls_back(self, tmp_project: Path) -> None:
        _write_config(tmp_project, "- just\n- a list\n")
        assert load_config(tmp_project) == LintConfig()
