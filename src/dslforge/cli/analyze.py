"""CLI command: dslforge analyze -- show dependencies and variable usage."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from dslforge.analysis import analyze as run_analyze
from dslforge.parser import ParseError, load_document


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the analysis as JSON.")
def analyze(file: str, as_json: bool) -> None:
    """Analyze a workflow document's dependency graph and variables.

    Shows the execution order, each node's upstream and downstream nodes,
    cycles, orphans and variable problems.
    """
    path = Path(file)

    try:
        document = load_document(path)
    except ParseError as exc:
        click.echo(f"Parse error: {exc}", err=True)
        sys.exit(1)

    result = run_analyze(document)
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    graph = result.dependencies
    click.echo(f"Workflow: {document.name or path.stem}  (mode={document.mode})")
    click.echo(f"Nodes: {len(document.nodes)}")
    click.echo(f"Edges: {len(document.edges)}")
    click.echo()

    click.echo("Execution order:")
    for position, nid in enumerate(graph.topological_order, start=1):
        dep = graph.nodes[nid]
        parts = [f"  {position}. {nid}"]
        if dep.depends_on:
            parts.append(f"after={','.join(dep.depends_on)}")
        if dep.provides:
            parts.append(f"provides={','.join(dep.provides)}")
        click.echo("  ".join(parts))

    if graph.circular_dependencies:
        click.echo()
        click.echo("Cycles:")
        for cycle in graph.circular_dependencies:
            click.echo("  " + " -> ".join([*cycle, cycle[0]]))

    if graph.orphan_nodes:
        click.echo()
        click.echo(f"Orphans: {', '.join(graph.orphan_nodes)}")

    variables = result.variables
    if variables.undefined:
        click.echo()
        click.echo("Undefined references:")
        for ref in variables.undefined:
            click.echo(f"  {ref.owner_id}: {ref.token}")

    if variables.unused:
        click.echo()
        click.echo(f"Unused variables: {', '.join(v.key for v in variables.unused)}")
