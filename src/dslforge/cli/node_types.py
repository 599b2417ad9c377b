"""CLI command: dslforge node-types -- list node types and their contracts."""

from __future__ import annotations

import click

from dslforge.model.contracts import DEFAULT_REGISTRY


@click.command("node-types")
def node_types() -> None:
    """List known node types with the variables and branches they expose."""
    for node_type in DEFAULT_REGISTRY.known_types():
        contract = DEFAULT_REGISTRY.contract_for(node_type)
        parts = [f"{node_type:<22}"]
        outputs = list(contract.outputs)
        if contract.config_outputs is not None:
            outputs.append("<from config>")
        parts.append(f"outputs={','.join(outputs) or '-'}")
        if contract.multi_output:
            branches = "<from config>"
            if contract.default_branch:
                branches += f"+{contract.default_branch}"
            parts.append(f"branches={branches}")
        click.echo("  ".join(parts))
