"""Tests for blockquery.rules.rule_engine: rules.yml parsing, validation, and evaluation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from blockquery.compare import each_is_one_of
from blockquery.rules import (
    CheckError,
    Evaluation,
    evaluate_all,
    evaluate_rule,
    load_rules,
    parse_rules,
    validate_rules,
)
from blockquery.source import BlockExtractor, MemorySourceTree
from blockquery.values import from_native, string_values

if TYPE_CHECKING:
    from pathlib import Path


def _azapi_document(resources: dict[str, dict[str, Any]]) -> str:
    """Build a main.tf.json holding the given azapi_resource blocks by name."""
    return json.dumps({"resource": {"azapi_resource": resources}}, indent=2)


def _write_rules(tmp_path: Path, content: str) -> Path:
    rules_path = tmp_path / "rules.yml"
    rules_path.write_text(content, encoding="utf-8")
    return rules_path


RULES_YML = """\
version: 1
rules:
  - name: storage-min-tls
    description: "Storage accounts must require TLS 1.2"
    link: https://example.com/tls
    query: properties.minimumTlsVersion
    predicate: is_one_of_and_must_exist
    expected: [TLS1_2]
    target:
      resource_type: Microsoft.Storage/storageAccounts
      minimum_api_version: 2021-01-01
  - name: nsg-protocols
    severity: warn
    query: properties.securityRules.#.properties.protocol
    predicate: each_is_one_of
    expected: ["Tcp", "Udp"]
    must_exist: true
"""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestLoadRules:
    def test_load_valid(self, tmp_path: Path) -> None:
        rules = load_rules(_write_rules(tmp_path, RULES_YML))
        assert [r.name for r in rules] == ["storage-min-tls", "nsg-protocols"]

        tls, nsg = rules
        assert tls.description == "Storage accounts must require TLS 1.2"
        assert tls.link == "https://example.com/tls"
        assert tls.severity == "error"
        assert tls.predicate_name == "is_one_of_and_must_exist"
        assert tls.expected == tuple(string_values("TLS1_2"))
        assert tls.resource_type == "Microsoft.Storage/storageAccounts"
        assert tls.minimum_api_version == "2021-01-01"
        assert tls.maximum_api_version == ""
        assert not tls.must_exist

        assert nsg.severity == "warn"
        assert nsg.block_query.predicate is each_is_one_of
        assert nsg.must_exist
        assert nsg.resource_type is None

    def test_default_target(self, tmp_path: Path) -> None:
        content = "version: 1\nrules:\n  - {name: r, query: a, predicate: exists}\n"
        (rule,) = load_rules(_write_rules(tmp_path, content))
        assert rule.block_type == "resource"
        assert rule.label_one == "azapi_resource"
        assert rule.label_names == ("type", "name")
        assert rule.block_query.query_attribute == "body"
        assert rule.expected == ()

    def test_custom_target(self) -> None:
        (rule,) = parse_rules(
            {
                "version": 1,
                "rules": [
                    {
                        "name": "module-settings",
                        "query": "tier",
                        "predicate": "is_one_of",
                        "expected": "premium",
                        "target": {
                            "block_type": "module",
                            "label": "network",
                            "label_names": ["name"],
                            "attribute": "settings",
                        },
                    }
                ],
            }
        )
        assert rule.block_type == "module"
        assert rule.label_one == "network"
        assert rule.label_names == ("name",)
        assert rule.block_query.query_attribute == "settings"
        assert rule.expected == tuple(string_values("premium"))

    def test_nested_list_expected(self) -> None:
        (rule,) = parse_rules(
            {
                "version": 1,
                "rules": [
                    {"name": "r", "query": "a", "predicate": "is_one_of", "expected": [[1, 2]]}
                ],
            }
        )
        assert rule.expected == (from_native([1, 2]),)

    def test_empty_rules(self) -> None:
        assert parse_rules({"version": 1}) == []

    @pytest.mark.parametrize(
        ("data", "match"),
        [
            ([], "must be a YAML mapping"),
            ({"rules": []}, "missing required 'version'"),
            ({"version": 2, "rules": []}, "unsupported version 2"),
            ({"version": 1, "rules": {}}, "'rules' must be a list"),
            ({"version": 1, "rules": ["x"]}, "rule at index 0 must be a mapping"),
            ({"version": 1, "rules": [{"query": "a"}]}, "missing required 'name'"),
            ({"version": 1, "rules": [{"name": "r", "predicate": "exists"}]}, "'query'"),
            (
                {"version": 1, "rules": [{"name": "r", "query": "a", "predicate": "bogus"}]},
                "invalid predicate 'bogus'",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {"name": "r", "query": "a", "predicate": "exists", "severity": "info"}
                    ],
                },
                "invalid severity 'info'",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {"name": "r", "query": "a", "predicate": "exists", "must_exist": "yes"}
                    ],
                },
                "'must_exist' must be true or false",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {"name": "r", "query": "a", "predicate": "exists", "target": ["x"]}
                    ],
                },
                "'target' must be a mapping",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {
                            "name": "r",
                            "query": "a",
                            "predicate": "exists",
                            "target": {"labels": "x"},
                        }
                    ],
                },
                "unknown target keys",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {
                            "name": "r",
                            "query": "a",
                            "predicate": "exists",
                            "target": {"label_names": "type"},
                        }
                    ],
                },
                "'label_names' must be a list of strings",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {"name": "r", "query": "a", "predicate": "exists"},
                        {"name": "r", "query": "b", "predicate": "exists"},
                    ],
                },
                "Duplicate rule name 'r'",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {
                            "name": "r",
                            "query": "a",
                            "predicate": "is_one_of",
                            "expected": [{"nested": "value"}],
                        }
                    ],
                },
                "invalid expected value: expected values cannot contain objects",
            ),
            (
                {
                    "version": 1,
                    "rules": [
                        {
                            "name": "r",
                            "query": "a",
                            "predicate": "is_one_of",
                            "expected": {"nested": "value"},
                        }
                    ],
                },
                "cannot contain objects",
            ),
        ],
    )
    def test_invalid(self, data: object, match: str) -> None:
        with pytest.raises(ValueError, match=match):
            parse_rules(data)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="invalid YAML"):
            load_rules(_write_rules(tmp_path, "version: 1\nrules: [\n"))


# ---------------------------------------------------------------------------
# Validation and evaluation
# ---------------------------------------------------------------------------


STORAGE_OK = {
    "type": "Microsoft.Storage/storageAccounts@2023-01-01",
    "body": {"properties": {"minimumTlsVersion": "TLS1_2"}},
}
STORAGE_BAD = {
    "type": "Microsoft.Storage/storageAccounts@2023-01-01",
    "body": {"properties": {"minimumTlsVersion": "TLS1_0"}},
}
STORAGE_OLD_API = {
    "type": "Microsoft.Storage/storageAccounts@2019-06-01",
    "body": {"properties": {"minimumTlsVersion": "TLS1_0"}},
}


def _extractor(content: str) -> BlockExtractor:
    return BlockExtractor(MemorySourceTree({"main.tf.json": content}))


class TestEvaluate:
    def test_violations_collected(self, tmp_path: Path) -> None:
        rules = load_rules(_write_rules(tmp_path, RULES_YML))
        content = _azapi_document({"ok": STORAGE_OK, "bad": STORAGE_BAD, "old": STORAGE_OLD_API})
        evaluation = evaluate_all(rules[:1], _extractor(content))

        assert evaluation.errors == []
        assert evaluation.blocks_checked == 3
        (violation,) = evaluation.violations
        assert violation.rule_name == "storage-min-tls"
        assert violation.block_address == "azapi_resource.bad"
        assert violation.message == "returned value TLS1_0 not in expected values [TLS1_2]"

    def test_must_exist_predicate_reports_missing(self, tmp_path: Path) -> None:
        rules = load_rules(_write_rules(tmp_path, RULES_YML))
        content = _azapi_document(
            {"s": {"type": "Microsoft.Storage/storageAccounts@2023-01-01", "body": {}}}
        )
        evaluation = evaluate_all(rules[:1], _extractor(content))
        assert [v.message for v in evaluation.violations] == [
            "returned value does not exist but expected"
        ]

    def test_check_error_keeps_earlier_violations(self) -> None:
        (rule,) = parse_rules(
            {
                "version": 1,
                "rules": [
                    {
                        "name": "protocols",
                        "query": "protocols",
                        "predicate": "each_is_one_of",
                        "expected": ["Tcp"],
                    }
                ],
            }
        )
        content = _azapi_document(
            {
                "a": {"type": "t@1", "body": {"protocols": ["Udp"]}},
                "b": {"type": "t@1", "body": {"protocols": "Tcp"}},
                "c": {"type": "t@1", "body": {"protocols": ["Icmp"]}},
            }
        )
        evaluation = Evaluation()
        evaluate_rule(rule, _extractor(content), evaluation)

        assert [v.block_address for v in evaluation.violations] == ["azapi_resource.a"]
        (error,) = evaluation.errors
        assert isinstance(error, CheckError)
        assert error.rule_name == "protocols"
        assert "expected a list but got string" in error.message
        assert error.file_path == "main.tf.json"
        assert error.line_number is not None

    def test_error_in_one_rule_does_not_stop_others(self) -> None:
        rules = parse_rules(
            {
                "version": 1,
                "rules": [
                    {"name": "broken", "query": "foo.0", "predicate": "exists"},
                    {
                        "name": "works",
                        "query": "foo",
                        "predicate": "is_one_of",
                        "expected": "bar",
                    },
                ],
            }
        )
        content = _azapi_document({"x": {"type": "t@1", "body": {"foo": "baz"}}})
        evaluation = evaluate_all(rules, _extractor(content))
        assert [e.rule_name for e in evaluation.errors] == ["broken"]
        assert [v.rule_name for v in evaluation.violations] == ["works"]


class TestValidateRules:
    def test_warns_for_untargeted_rules(self) -> None:
        rules = parse_rules(
            {
                "version": 1,
                "rules": [
                    {"name": "azapi", "query": "a", "predicate": "exists"},
                    {
                        "name": "modules",
                        "query": "a",
                        "predicate": "exists",
                        "target": {"block_type": "module", "label": "x", "label_names": ["n"]},
                    },
                ],
            }
        )
        content = _azapi_document({"x": STORAGE_OK})
        warnings = validate_rules(rules, _extractor(content))
        assert warnings == ["Rule 'modules': no module blocks labelled 'x' found"]
