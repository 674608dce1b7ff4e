"""Tests for blockquery.linter: lint orchestration and output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from blockquery.linter import (
    LintError,
    LintResult,
    format_json,
    format_porcelain,
    format_rich,
    lint,
)
from blockquery.rules import CheckError, Violation
from blockquery.source import MemorySourceTree

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

RULES_YML = """\
version: 1
rules:
  - name: storage-https-only
    description: "Storage accounts must only allow HTTPS traffic"
    link: https://example.com/https
    query: properties.supportsHttpsTrafficOnly
    predicate: is_one_of
    expected: true
    target:
      resource_type: Microsoft.Storage/storageAccounts
"""


def _storage_document(https_only: object) -> str:
    return json.dumps(
        {
            "resource": {
                "azapi_resource": {
                    "storage": {
                        "type": "Microsoft.Storage/storageAccounts@2023-01-01",
                        "body": {"properties": {"supportsHttpsTrafficOnly": https_only}},
                    }
                }
            }
        },
        indent=2,
    )


def _project(tmp_project: Path, *, https_only: object = True) -> Path:
    (tmp_project / ".blockquery" / "rules.yml").write_text(RULES_YML, encoding="utf-8")
    (tmp_project / "main.tf.json").write_text(_storage_document(https_only), encoding="utf-8")
    return tmp_project


def _violation(**overrides: object) -> Violation:
    fields: dict[str, object] = {
        "rule_name": "storage-https-only",
        "rule_description": "Storage accounts must only allow HTTPS traffic",
        "severity": "error",
        "file_path": "main.tf.json",
        "line_number": 7,
        "block_address": "azapi_resource.storage",
        "message": "returned value false not in expected values [true]",
        "link": "https://example.com/https",
    }
    fields.update(overrides)
    return Violation(**fields)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# lint()
# ---------------------------------------------------------------------------


class TestLint:
    def test_clean_project(self, tmp_project: Path) -> None:
        result = lint(_project(tmp_project))
        assert result.violations == []
        assert result.errors == []
        assert result.rules_evaluated == 1
        assert result.files_scanned == 1
        assert result.blocks_checked == 1
        assert result.elapsed_ms >= 0

    def test_violation_found(self, tmp_project: Path) -> None:
        result = lint(_project(tmp_project, https_only=False))
        (violation,) = result.violations
        assert violation.rule_name == "storage-https-only"
        assert violation.file_path == "main.tf.json"
        assert violation.line_number == 6
        assert violation.message == "returned value false not in expected values [true]"

    def test_no_rules_file(self, tmp_project: Path) -> None:
        result = lint(tmp_project)
        assert result == LintResult(elapsed_ms=result.elapsed_ms)

    def test_explicit_rules_path(self, tmp_project: Path, tmp_path: Path) -> None:
        project = _project(tmp_project, https_only=False)
        rules_path = tmp_path / "other.yml"
        rules_path.write_text("version: 1\nrules: []\n", encoding="utf-8")
        result = lint(project, rules_path=rules_path)
        assert result.rules_evaluated == 0
        assert result.violations == []

    def test_rules_path_from_config(self, tmp_project: Path) -> None:
        (tmp_project / "policy").mkdir()
        (tmp_project / "policy" / "rules.yml").write_text(RULES_YML, encoding="utf-8")
        (tmp_project / ".blockquery" / "config.yml").write_text(
            "rules: policy/rules.yml\n", encoding="utf-8"
        )
        (tmp_project / "main.tf.json").write_text(_storage_document(False), encoding="utf-8")
        assert len(lint(tmp_project).violations) == 1

    def test_memory_tree(self, tmp_project: Path) -> None:
        (tmp_project / ".blockquery" / "rules.yml").write_text(RULES_YML, encoding="utf-8")
        tree = MemorySourceTree(
            {"a.tf.json": _storage_document(False), "b.tf.json": _storage_document(True)}
        )
        result = lint(tmp_project, tree=tree)
        assert result.files_scanned == 2
        assert [v.file_path for v in result.violations] == ["a.tf.json"]

    def test_invalid_rules(self, tmp_project: Path) -> None:
        (tmp_project / ".blockquery" / "rules.yml").write_text(
            "version: 1\nrules:\n  - name: r\n    query: a\n    predicate: nope\n",
            encoding="utf-8",
        )
        with pytest.raises(LintError, match="Invalid rules configuration"):
            lint(tmp_project)

    def test_invalid_source_file(self, tmp_project: Path) -> None:
        project = _project(tmp_project)
        (project / "broken.tf.json").write_text("{", encoding="utf-8")
        with pytest.raises(LintError, match=r"broken\.tf\.json"):
            lint(project)

    def test_terraform_dir_is_excluded(self, tmp_project: Path) -> None:
        project = _project(tmp_project)
        cache = project / ".terraform" / "modules"
        cache.mkdir(parents=True)
        (cache / "x.tf.json").write_text("{", encoding="utf-8")
        assert lint(project).files_scanned == 1


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class TestFormatRich:
    def test_clean(self) -> None:
        output = format_rich(LintResult(rules_evaluated=2, files_scanned=3, blocks_checked=5))
        assert "Rules: 2 loaded" in output
        assert "Files: 3 scanned, 5 blocks checked" in output
        assert "✓ No violations found (2 rules evaluated" in output

    def test_violation(self) -> None:
        output = format_rich(LintResult(violations=[_violation()], rules_evaluated=1))
        assert "✗ storage-https-only [error]" in output
        assert "  Storage accounts must only allow HTTPS traffic" in output
        assert (
            "  main.tf.json:7 azapi_resource.storage → "
            "returned value false not in expected values [true]"
        ) in output
        assert "  see https://example.com/https" in output
        assert "1 violations found (1 rules evaluated" in output

    def test_violation_without_location(self) -> None:
        violation = _violation(file_path=None, line_number=None, block_address=None, link="")
        output = format_rich(LintResult(violations=[violation]))
        assert "  returned value false not in expected values [true]" in output
        assert "see " not in output

    def test_errors(self) -> None:
        error = CheckError("protocols", "could not compare values", "main.tf.json", 3)
        output = format_rich(LintResult(errors=[error], rules_evaluated=1))
        assert "! protocols [internal error]" in output
        assert "  main.tf.json:3 → could not compare values" in output
        assert "1 rules could not be checked" in output


class TestFormatJson:
    def test_structure(self) -> None:
        error = CheckError("protocols", "boom")
        result = LintResult(
            violations=[_violation()],
            errors=[error],
            rules_evaluated=2,
            files_scanned=1,
            blocks_checked=4,
            elapsed_ms=1.5,
        )
        data = json.loads(format_json(result))
        assert data["violations"][0]["rule_name"] == "storage-https-only"
        assert data["violations"][0]["line_number"] == 7
        assert data["violations"][0]["link"] == "https://example.com/https"
        assert data["errors"] == [
            {"rule_name": "protocols", "file_path": None, "line_number": None, "message": "boom"}
        ]
        assert data["summary"] == {
            "rules_evaluated": 2,
            "violations_count": 1,
            "errors_count": 1,
            "files_scanned": 1,
            "blocks_checked": 4,
            "elapsed_ms": 1.5,
        }


class TestFormatPorcelain:
    def test_lines(self) -> None:
        result = LintResult(
            violations=[_violation(), _violation(severity="warn", line_number=None)],
            errors=[CheckError("protocols", "boom")],
        )
        assert format_porcelain(result).splitlines() == [
            "storage-https-only:error:main.tf.json:7:"
            "returned value false not in expected values [true]",
            "storage-https-only:warn:main.tf.json::"
            "returned value false not in expected values [true]",
            "protocols:internal:::boom",
        ]

    def test_empty(self) -> None:
        assert format_porcelain(LintResult()) == ""
