"""Linter orchestrator: load config and rules, extract blocks, evaluate, format results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from blockquery.config import load_config
from blockquery.rules.rule_engine import CheckError, evaluate_all, load_rules, validate_rules
from blockquery.source.blocks import BlockExtractor, SourceError
from blockquery.source.tree import LocalSourceTree

if TYPE_CHECKING:
    from pathlib import Path

    from blockquery.rules.query_rule import Violation
    from blockquery.source.tree import SourceTree

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a configuration or source error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    violations: list[Violation] = field(default_factory=list)
    errors: list[CheckError] = field(default_factory=list)
    rules_evaluated: int = 0
    files_scanned: int = 0
    blocks_checked: int = 0
    elapsed_ms: float = 0.0


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    project_root: Path,
    *,
    rules_path: Path | None = None,
    tree: SourceTree | None = None,
) -> LintResult:
    """Run the lint process: load rules, extract blocks, evaluate, and return results.

    Parameters
    ----------
    project_root:
        Root of the project (where ``.blockquery/`` lives).
    rules_path:
        Optional explicit path to ``rules.yml``.  When *None* the path from
        ``.blockquery/config.yml`` is used, defaulting to
        ``<project_root>/.blockquery/rules.yml``.
    tree:
        Source tree to read configuration files from.  Defaults to the files
        under *project_root*.

    Returns
    -------
    LintResult
        Summary with violations, aborted checks, counts, and timing.

    Raises
    ------
    LintError
        When the rules file is invalid or a source file cannot be parsed.
    """
    start = time.monotonic()
    config = load_config(project_root)

    if rules_path is None:
        rules_path = project_root / config.rules_path

    if not rules_path.is_file():
        logger.debug("No rules file at %s", rules_path)
        elapsed = (time.monotonic() - start) * 1000
        return LintResult(elapsed_ms=elapsed)

    try:
        rules = load_rules(rules_path)
    except ValueError as exc:
        msg = f"Invalid rules configuration: {exc}"
        raise LintError(msg) from exc

    extractor = BlockExtractor(
        tree if tree is not None else LocalSourceTree(project_root),
        include=config.include,
        exclude=config.exclude,
    )

    try:
        for warning in validate_rules(rules, extractor):
            logger.info(warning)
        evaluation = evaluate_all(rules, extractor)
        files_scanned = len(extractor.files())
    except SourceError as exc:
        msg = f"Invalid source file {exc}"
        raise LintError(msg) from exc

    elapsed = (time.monotonic() - start) * 1000
    return LintResult(
        violations=evaluation.violations,
        errors=evaluation.errors,
        rules_evaluated=len(rules),
        files_scanned=files_scanned,
        blocks_checked=evaluation.blocks_checked,
        elapsed_ms=elapsed,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _location(file_path: str | None, line_number: int | None) -> str | None:
    if file_path is None:
        return None
    if line_number is None:
        return file_path
    return f"{file_path}:{line_number}"


def format_rich(result: LintResult) -> str:
    """Format a LintResult as human-readable text.

    Example output with violations::

        Rules: 2 loaded
        Files: 3 scanned, 5 blocks checked

        x storage-https-only [error]
          Storage accounts must only allow HTTPS traffic
          main.tf.json:7 azapi_resource.sa -> returned value false not in expected values [true]

        1 violations found (2 rules evaluated, 0.0s)
    """
    lines: list[str] = []

    lines.append(f"Rules: {result.rules_evaluated} loaded")
    lines.append(f"Files: {result.files_scanned} scanned, {result.blocks_checked} blocks checked")
    lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    for v in result.violations:
        lines.append(f"✗ {v.rule_name} [{v.severity}]")
        if v.rule_description:
            lines.append(f"  {v.rule_description}")
        where = " ".join(
            part
            for part in (_location(v.file_path, v.line_number), v.block_address)
            if part is not None
        )
        lines.append(f"  {where} → {v.message}" if where else f"  {v.message}")
        if v.link:
            lines.append(f"  see {v.link}")
        lines.append("")

    for e in result.errors:
        lines.append(f"! {e.rule_name} [internal error]")
        loc = _location(e.file_path, e.line_number)
        lines.append(f"  {loc} → {e.message}" if loc else f"  {e.message}")
        lines.append("")

    if result.violations:
        count = len(result.violations)
        lines.append(
            f"{count} violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
    else:
        lines.append(
            f"✓ No violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
    if result.errors:
        lines.append(f"{len(result.errors)} rules could not be checked")

    return "\n".join(lines)


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON.

    Returns a JSON string with ``violations`` and ``errors`` arrays and a
    ``summary`` object.
    """
    violations_list: list[dict[str, object]] = [
        {
            "rule_name": v.rule_name,
            "severity": v.severity,
            "file_path": v.file_path,
            "line_number": v.line_number,
            "block_address": v.block_address,
            "message": v.message,
            "link": v.link,
        }
        for v in result.violations
    ]
    errors_list: list[dict[str, object]] = [
        {
            "rule_name": e.rule_name,
            "file_path": e.file_path,
            "line_number": e.line_number,
            "message": e.message,
        }
        for e in result.errors
    ]

    output: dict[str, object] = {
        "violations": violations_list,
        "errors": errors_list,
        "summary": {
            "rules_evaluated": result.rules_evaluated,
            "violations_count": len(result.violations),
            "errors_count": len(result.errors),
            "files_scanned": result.files_scanned,
            "blocks_checked": result.blocks_checked,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult) -> str:
    """Format a LintResult as machine-readable one-line-per-finding output.

    Format: ``rule_name:severity:file_path:line:message``; aborted checks use
    the severity ``internal``.  Returns an empty string when there is nothing
    to report.
    """
    lines: list[str] = []
    for v in result.violations:
        file_path = v.file_path if v.file_path is not None else ""
        line_number = str(v.line_number) if v.line_number is not None else ""
        lines.append(f"{v.rule_name}:{v.severity}:{file_path}:{line_number}:{v.message}")
    for e in result.errors:
        file_path = e.file_path if e.file_path is not None else ""
        line_number = str(e.line_number) if e.line_number is not None else ""
        lines.append(f"{e.rule_name}:internal:{file_path}:{line_number}:{e.message}")
    return "\n".join(lines)
