"""Block query rules: run one path query per block and judge it with a predicate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from blockquery.compare.predicates import ComparisonError, predicate_name
from blockquery.query.errors import QueryError, QueryNotFoundError
from blockquery.query.evaluator import MISSING, evaluate
from blockquery.values.model import StringValue, UnknownValue

if TYPE_CHECKING:
    from collections.abc import Iterable

    from blockquery.compare.predicates import Predicate
    from blockquery.query.evaluator import QueryResult
    from blockquery.source.blocks import Attribute, Block, SourceRange
    from blockquery.values.model import DynamicValue

logger = logging.getLogger(__name__)

AZAPI_RESOURCE = "azapi_resource"
TYPE_ATTRIBUTE = "type"
NAME_ATTRIBUTE = "name"

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlockQuery:
    """A query to run against one attribute of blocks with a given type and label."""

    query: str
    predicate: Predicate
    block_type: str = "resource"  # e.g. "resource", "data", "module"
    label_one: str = AZAPI_RESOURCE  # first label, e.g. "azapi_resource"
    label_names: tuple[str, ...] = (TYPE_ATTRIBUTE, NAME_ATTRIBUTE)
    query_attribute: str = "body"  # attribute the query runs against


@dataclass(frozen=True)
class Violation:
    """A single failed check, reported at the queried attribute."""

    rule_name: str
    rule_description: str
    severity: str  # "error" | "warn"
    file_path: str | None
    line_number: int | None
    block_address: str | None  # e.g. "azapi_resource.storage"
    message: str
    link: str = ""


class RuleCheckError(Exception):
    """A rule could not be checked: the query or predicate was misused.

    Distinct from a violation.  It aborts the rest of the rule's check.
    """

    def __init__(self, rule_name: str, message: str, location: SourceRange | None = None) -> None:
        super().__init__(message)
        self.rule_name = rule_name
        self.location = location


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryRule:
    """Run ``block_query`` on each matching block and compare with ``expected``.

    When ``resource_type`` is set, only blocks whose ``type`` attribute reads
    ``<resource_type>@<api-version>`` (case-insensitive type, version within
    the optional bounds) are checked.  ``must_exist`` turns a query path that
    is not found into a violation; otherwise the predicate sees ``MISSING``.
    """

    name: str
    block_query: BlockQuery
    expected: tuple[DynamicValue, ...] = ()
    description: str = ""
    link: str = ""
    severity: str = "error"
    resource_type: str | None = None
    minimum_api_version: str = ""
    maximum_api_version: str = ""
    must_exist: bool = False

    # BlockFetcher protocol -------------------------------------------------

    @property
    def block_type(self) -> str:
        return self.block_query.block_type

    @property
    def label_one(self) -> str:
        return self.block_query.label_one

    @property
    def label_names(self) -> tuple[str, ...]:
        return self.block_query.label_names

    @property
    def attribute_names(self) -> tuple[str, ...]:
        names = [NAME_ATTRIBUTE, TYPE_ATTRIBUTE, self.block_query.query_attribute]
        return tuple(dict.fromkeys(names))

    @property
    def predicate_name(self) -> str:
        return predicate_name(self.block_query.predicate)

    # Checking --------------------------------------------------------------

    def check(self, blocks: Iterable[Block]) -> list[Violation]:
        """Check every block and return the violations found.

        Raises
        ------
        RuleCheckError
            A query hit a structural error (wrong kind, index out of range)
            or the predicate was misused.
        """
        violations: list[Violation] = []
        for block in blocks:
            violation = self.check_block(block)
            if violation is not None:
                violations.append(violation)
        return violations

    def check_block(self, block: Block) -> Violation | None:
        if self.resource_type is not None:
            type_attr = block.attributes.get(TYPE_ATTRIBUTE)
            if type_attr is None:
                return self._violation(
                    block, "Resource does not have a `type` attribute", block.def_range
                )
            if not self._type_matches(block, type_attr):
                return None

        attr_name = self.block_query.query_attribute
        attr = block.attributes.get(attr_name)
        if attr is None:
            return self._violation(
                block, f"Resource does not have a `{attr_name}` attribute", block.def_range
            )

        result = self._query(block, attr)
        if isinstance(result, Violation):
            return result

        try:
            verdict = self.block_query.predicate(result, *self.expected)
        except ComparisonError as exc:
            msg = f"could not compare values for {block.address}: {exc}"
            raise RuleCheckError(self.name, msg, attr.range) from exc
        if verdict.passed:
            return None
        return self._violation(block, verdict.message, attr.range)

    def _query(self, block: Block, attr: Attribute) -> QueryResult | Violation:
        try:
            return evaluate(attr.value, self.block_query.query)
        except QueryNotFoundError as exc:
            if self.must_exist:
                return self._violation(block, str(exc), attr.range)
            return MISSING
        except QueryError as exc:
            msg = f"could not query value of {block.address}: {exc}"
            raise RuleCheckError(self.name, msg, attr.range) from exc

    def _type_matches(self, block: Block, type_attr: Attribute) -> bool:
        value = type_attr.value
        if isinstance(value, UnknownValue):
            logger.debug("Rule %s: skipping %s, type is unknown", self.name, block.address)
            return False
        if not isinstance(value, StringValue):
            logger.debug("Rule %s: skipping %s, type is not a string", self.name, block.address)
            return False
        return check_azapi_type(
            value.value,
            self.resource_type or "",
            self.minimum_api_version,
            self.maximum_api_version,
        )

    def _violation(self, block: Block, message: str, location: SourceRange) -> Violation:
        return Violation(
            rule_name=self.name,
            rule_description=self.description,
            severity=self.severity,
            file_path=location.filename or None,
            line_number=location.line,
            block_address=block.address,
            message=message,
            link=self.link,
        )


def check_azapi_type(
    got_type: str, want_type: str, minimum_api_version: str, maximum_api_version: str
) -> bool:
    """Match ``<type>@<api-version>`` against a resource type and version bounds.

    Types compare case-insensitively; versions compare lexically, which orders
    ``YYYY-MM-DD`` dates correctly.
    """
    parts = got_type.split("@")
    if len(parts) != 2:
        return False
    resource_type, api_version = parts
    if resource_type.casefold() != want_type.casefold():
        return False
    if minimum_api_version and api_version < minimum_api_version:
        return False
    return not (maximum_api_version and api_version > maximum_api_version)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def new_azapi_rule_must_exist(
    name: str,
    link: str,
    resource_type: str,
    minimum_api_version: str,
    maximum_api_version: str,
    query: str,
    predicate: Predicate,
    *expected: DynamicValue,
) -> QueryRule:
    """Rule on the ``body`` of ``azapi_resource`` blocks; a missing path is a violation.

    Build *expected* with the ``blockquery.values`` literal builders, e.g.
    ``*string_values("TLS1_2")``.
    """
    return QueryRule(
        name=name,
        block_query=BlockQuery(query=query, predicate=predicate),
        expected=tuple(expected),
        link=link,
        resource_type=resource_type,
        minimum_api_version=minimum_api_version,
        maximum_api_version=maximum_api_version,
        must_exist=True,
    )


def new_azapi_rule_optional_exist(
    name: str,
    link: str,
    resource_type: str,
    minimum_api_version: str,
    maximum_api_version: str,
    query: str,
    predicate: Predicate,
    *expected: DynamicValue,
) -> QueryRule:
    """Like :func:`new_azapi_rule_must_exist`, but a missing path is left to the predicate."""
    return QueryRule(
        name=name,
        block_query=BlockQuery(query=query, predicate=predicate),
        expected=tuple(expected),
        link=link,
        resource_type=resource_type,
        minimum_api_version=minimum_api_version,
        maximum_api_version=maximum_api_version,
        must_exist=False,
    )
