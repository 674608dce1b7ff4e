"""Rule engine: parse rules.yml into query rules and evaluate them over a source tree."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from blockquery.compare.predicates import PREDICATES
from blockquery.rules.query_rule import (
    AZAPI_RESOURCE,
    BlockQuery,
    QueryRule,
    RuleCheckError,
    Violation,
)
from blockquery.values.literals import expected_value

if TYPE_CHECKING:
    from pathlib import Path

    from blockquery.source.blocks import BlockExtractor
    from blockquery.values.model import DynamicValue

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_RULE_SEVERITIES: frozenset[str] = frozenset({"error", "warn"})
SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})

_TARGET_KEYS: frozenset[str] = frozenset(
    {
        "block_type",
        "label",
        "label_names",
        "attribute",
        "resource_type",
        "minimum_api_version",
        "maximum_api_version",
    }
)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckError:
    """A rule whose check was aborted by an internal error (not a finding)."""

    rule_name: str
    message: str
    file_path: str | None = None
    line_number: int | None = None


@dataclass
class Evaluation:
    """Outcome of evaluating a set of rules."""

    violations: list[Violation] = field(default_factory=list)
    errors: list[CheckError] = field(default_factory=list)
    blocks_checked: int = 0


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _optional_str(data: dict[str, Any], key: str, context: str) -> str | None:
    raw = data.get(key)
    if raw is None:
        return None
    # Unquoted dates such as 2021-01-01 arrive as datetime.date.
    if not isinstance(raw, (str, int, float, datetime.date)) or isinstance(raw, bool):
        msg = f"{context}: '{key}' must be a string"
        raise ValueError(msg)
    return str(raw)


def _parse_target(name: str, target_data: object) -> dict[str, Any]:
    """Parse the optional 'target' block of a rule into QueryRule/BlockQuery kwargs."""
    if target_data is None:
        target_data = {}
    if not isinstance(target_data, dict):
        msg = f"Rule '{name}': 'target' must be a mapping"
        raise ValueError(msg)

    unknown = sorted(set(target_data) - _TARGET_KEYS)
    if unknown:
        msg = f"Rule '{name}': unknown target keys {unknown}, must be among {sorted(_TARGET_KEYS)}"
        raise ValueError(msg)

    context = f"Rule '{name}' target"
    label_names_raw = target_data.get("label_names", ["type", "name"])
    if not isinstance(label_names_raw, list) or not all(
        isinstance(item, str) for item in label_names_raw
    ):
        msg = f"{context}: 'label_names' must be a list of strings"
        raise ValueError(msg)

    return {
        "block_type": _optional_str(target_data, "block_type", context) or "resource",
        "label_one": _optional_str(target_data, "label", context) or AZAPI_RESOURCE,
        "label_names": tuple(label_names_raw),
        "query_attribute": _optional_str(target_data, "attribute", context) or "body",
        "resource_type": _optional_str(target_data, "resource_type", context),
        "minimum_api_version": _optional_str(target_data, "minimum_api_version", context) or "",
        "maximum_api_version": _optional_str(target_data, "maximum_api_version", context) or "",
    }


def _parse_expected(name: str, expected_raw: object) -> tuple[DynamicValue, ...]:
    """Turn the 'expected' entry into expected values.

    A list holds one candidate per item (nest a list to expect a list); any
    other value is a single candidate.  Mappings are rejected.
    """
    if expected_raw is None:
        return ()
    items = expected_raw if isinstance(expected_raw, list) else [expected_raw]
    try:
        return tuple(expected_value(item) for item in items)
    except TypeError as exc:
        msg = f"Rule '{name}': invalid expected value: {exc}"
        raise ValueError(msg) from exc


def _parse_rule(idx: int, rule_data: object) -> QueryRule:
    if not isinstance(rule_data, dict):
        msg = f"rules.yml: rule at index {idx} must be a mapping"
        raise ValueError(msg)

    name = rule_data.get("name")
    if name is None or not isinstance(name, str) or not name.strip():
        msg = f"rules.yml: rule at index {idx} missing required 'name' field"
        raise ValueError(msg)

    query = rule_data.get("query")
    if not isinstance(query, str):
        msg = f"Rule '{name}': 'query' must be a string"
        raise ValueError(msg)

    predicate_raw = rule_data.get("predicate")
    if not isinstance(predicate_raw, str) or predicate_raw not in PREDICATES:
        msg = (
            f"Rule '{name}': invalid predicate '{predicate_raw}', "
            f"must be one of {sorted(PREDICATES)}"
        )
        raise ValueError(msg)

    severity = str(rule_data.get("severity", "error"))
    if severity not in VALID_RULE_SEVERITIES:
        msg = (
            f"rules.yml: rule '{name}' has invalid severity '{severity}', "
            f"must be one of {sorted(VALID_RULE_SEVERITIES)}"
        )
        raise ValueError(msg)

    must_exist = rule_data.get("must_exist", False)
    if not isinstance(must_exist, bool):
        msg = f"Rule '{name}': 'must_exist' must be true or false"
        raise ValueError(msg)

    target = _parse_target(name, rule_data.get("target"))
    block_query = BlockQuery(
        query=query,
        predicate=PREDICATES[predicate_raw],
        block_type=target["block_type"],
        label_one=target["label_one"],
        label_names=target["label_names"],
        query_attribute=target["query_attribute"],
    )

    return QueryRule(
        name=name,
        block_query=block_query,
        expected=_parse_expected(name, rule_data.get("expected")),
        description=str(rule_data.get("description", "")),
        link=str(rule_data.get("link", "")),
        severity=severity,
        resource_type=target["resource_type"],
        minimum_api_version=target["minimum_api_version"],
        maximum_api_version=target["maximum_api_version"],
        must_exist=must_exist,
    )


def parse_rules(data: object) -> list[QueryRule]:
    """Validate decoded rules.yml content and build the rules it declares."""
    if not isinstance(data, dict):
        msg = "rules.yml must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = "rules.yml: missing required 'version' field"
        raise ValueError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"rules.yml: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    rules_data = data.get("rules", [])
    if not isinstance(rules_data, list):
        msg = "rules.yml: 'rules' must be a list"
        raise ValueError(msg)

    seen_names: set[str] = set()
    rules: list[QueryRule] = []
    for idx, rule_data in enumerate(rules_data):
        rule = _parse_rule(idx, rule_data)
        if rule.name in seen_names:
            msg = f"rules.yml: Duplicate rule name '{rule.name}'"
            raise ValueError(msg)
        seen_names.add(rule.name)
        rules.append(rule)
    return rules


def load_rules(rules_path: Path) -> list[QueryRule]:
    """Parse rules.yml and return validated QueryRule objects.

    Raises ``ValueError`` on schema errors (missing version, unknown
    predicate, invalid severity, etc.).
    """
    try:
        with rules_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"rules.yml: invalid YAML: {exc}"
        raise ValueError(msg) from exc
    return parse_rules(data)


# ---------------------------------------------------------------------------
# Validation and evaluation
# ---------------------------------------------------------------------------


def validate_rules(rules: list[QueryRule], extractor: BlockExtractor) -> list[str]:
    """Return warnings for rules that target no block in the source tree."""
    warnings: list[str] = []
    for rule in rules:
        if not extractor.fetch_blocks(rule):
            warnings.append(
                f"Rule '{rule.name}': no {rule.block_type} blocks labelled "
                f"'{rule.label_one}' found"
            )
    return warnings


def evaluate_rule(rule: QueryRule, extractor: BlockExtractor, evaluation: Evaluation) -> None:
    """Check one rule, recording violations or the error that aborted it.

    Violations found before an abort are kept.
    """
    blocks = extractor.fetch_blocks(rule)
    try:
        for block in blocks:
            evaluation.blocks_checked += 1
            violation = rule.check_block(block)
            if violation is not None:
                evaluation.violations.append(violation)
    except RuleCheckError as exc:
        location = exc.location
        logger.debug("Rule %s aborted: %s", rule.name, exc)
        evaluation.errors.append(
            CheckError(
                rule_name=rule.name,
                message=str(exc),
                file_path=location.filename if location is not None else None,
                line_number=location.line if location is not None else None,
            )
        )


def evaluate_all(rules: list[QueryRule], extractor: BlockExtractor) -> Evaluation:
    """Evaluate every rule and return violations and aborted checks."""
    evaluation = Evaluation()
    for rule in rules:
        evaluate_rule(rule, extractor, evaluation)
    return evaluation
