"""Rules domain: block query rules, rules.yml loading, and evaluation."""

from blockquery.rules.query_rule import (
    BlockQuery,
    QueryRule,
    RuleCheckError,
    Violation,
    check_azapi_type,
    new_azapi_rule_must_exist,
    new_azapi_rule_optional_exist,
)
from blockquery.rules.rule_engine import (
    CheckError,
    Evaluation,
    evaluate_all,
    evaluate_rule,
    load_rules,
    parse_rules,
    validate_rules,
)

__all__ = [
    "BlockQuery",
    "CheckError",
    "Evaluation",
    "QueryRule",
    "RuleCheckError",
    "Violation",
    "check_azapi_type",
    "evaluate_all",
    "evaluate_rule",
    "load_rules",
    "new_azapi_rule_must_exist",
    "new_azapi_rule_optional_exist",
    "parse_rules",
    "validate_rules",
]
