"""blockquery CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
import yaml

from blockquery import __version__


@click.group()
@click.version_option(version=__version__, prog_name="blockquery")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (debug logging on stderr).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool) -> None:
    """blockquery - query and check nested configuration values."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="[%(name)s] %(levelname)s: %(message)s",
            stream=sys.stderr,
        )


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if violations found.",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Rules file (default: from .blockquery/config.yml or .blockquery/rules.yml).",
)
def lint(
    *,
    fmt: str | None,
    strict: bool,
    project: Path | None,
    rules_path: Path | None,
) -> None:
    """Check configuration blocks against the rules in rules.yml.

    Exit codes: 0 = clean or violations without --strict,
    1 = violations with --strict, 2 = configuration error or a rule that
    could not be checked.
    """
    from blockquery.linter import LintError
    from blockquery.linter import format_json as _format_json
    from blockquery.linter import format_porcelain as _format_porcelain
    from blockquery.linter import format_rich as _format_rich
    from blockquery.linter import lint as run_lint

    project_root = project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_lint(project_root, rules_path=rules_path)
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if result.errors:
        sys.exit(2)
    if strict and result.violations:
        sys.exit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("path", default="")
@click.option("--kind", "show_kind", is_flag=True, help="Print the kind of the result too.")
def query(*, file: Path, path: str, show_kind: bool) -> None:
    """Evaluate a dotted PATH against a JSON or YAML document FILE.

    Strings holding ${...} templates evaluate as unknown.  Exit code 1 when
    the path cannot be resolved, 2 when the document cannot be read.
    """
    from blockquery.query.errors import QueryError
    from blockquery.query.evaluator import evaluate
    from blockquery.source.blocks import json_to_value
    from blockquery.values.model import kind_of
    from blockquery.values.render import render_value

    text = file.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if file.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        click.echo(f"Error: cannot parse {file}: {exc}", err=True)
        sys.exit(2)

    try:
        root = json_to_value(data)
    except TypeError as exc:
        click.echo(f"Error: unsupported document {file}: {exc}", err=True)
        sys.exit(2)

    try:
        result = evaluate(root, path)
    except QueryError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if show_kind:
        click.echo(f"{kind_of(result).value}\t{render_value(result)}")
    else:
        click.echo(render_value(result))


@main.command("rules")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
@click.option("--json", "as_json", is_flag=True, help="JSON output.")
def rules_cmd(*, project: Path | None, as_json: bool) -> None:
    """List the rules defined for the project."""
    from blockquery.config import load_config
    from blockquery.rules.rule_engine import load_rules
    from blockquery.values.render import render_values

    project_root = project or Path.cwd()
    rules_path = project_root / load_config(project_root).rules_path
    if not rules_path.is_file():
        click.echo(f"Error: rules file not found: {rules_path}", err=True)
        sys.exit(2)

    try:
        rules = load_rules(rules_path)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if as_json:
        data = [
            {
                "name": r.name,
                "severity": r.severity,
                "target": f"{r.block_type}.{r.label_one}.{r.block_query.query_attribute}",
                "resource_type": r.resource_type,
                "query": r.block_query.query,
                "predicate": r.predicate_name,
                "expected": render_values(r.expected),
                "must_exist": r.must_exist,
            }
            for r in rules
        ]
        click.echo(json.dumps(data, ensure_ascii=False, indent=2))
        return

    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    table = Table(title=f"Rules ({len(rules)})")
    table.add_column("name", style="cyan")
    table.add_column("severity")
    table.add_column("resource type")
    table.add_column("query")
    table.add_column("predicate")
    table.add_column("expected")
    table.add_column("must exist", justify="center")
    for r in rules:
        table.add_row(
            r.name,
            r.severity,
            r.resource_type or "-",
            r.block_query.query,
            r.predicate_name,
            escape(render_values(r.expected)),
            "yes" if r.must_exist else "no",
        )
    Console().print(table)


@main.command("predicates")
def predicates_cmd() -> None:
    """List predicate names usable in rules.yml."""
    from blockquery.compare.predicates import PREDICATES

    for name in sorted(PREDICATES):
        click.echo(name)
