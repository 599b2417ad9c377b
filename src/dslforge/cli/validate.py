"""CLI command: dslforge validate -- load and validate a workflow document."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from dslforge.config import DslforgeConfig
from dslforge.parser import ParseError, load_document
from dslforge.validation import WorkflowValidator


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.option(
    "--orphans-as-errors", is_flag=True, help="Treat disconnected nodes as errors."
)
def validate(file: str, as_json: bool, orphans_as_errors: bool) -> None:
    """Validate a workflow document (YAML or JSON).

    Prints diagnostics (errors, warnings, info) and exits with code 0 if
    no errors are found, or code 1 if there are errors.
    """
    path = Path(file)

    try:
        document = load_document(path)
    except ParseError as exc:
        click.echo(f"Parse error: {exc}", err=True)
        sys.exit(1)

    config = DslforgeConfig(orphans_as_errors=orphans_as_errors)
    report = WorkflowValidator(policy=config.validation_policy()).validate(document)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.valid else 1)

    if not report.diagnostics:
        click.echo(f"OK: {path.name} is valid (0 diagnostics)")
        sys.exit(0)

    for diag in report.diagnostics:
        click.echo(str(diag))

    click.echo()
    click.echo(
        f"Summary: {len(report.errors)} error(s), {len(report.warnings)} warning(s), "
        f"{len(report.infos)} info"
    )
    sys.exit(0 if report.valid else 1)
