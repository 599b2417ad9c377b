"""Variable resolution: defined outputs versus references across nodes."""

from __future__ import annotations

from collections.abc import Sequence

from dslforge.analysis.references import extract_references
from dslforge.analysis.result import DefinedVariable, VariableAnalysis, VariableReference
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.graph import Node

SYSTEM_NAMESPACE = "sys"

SYSTEM_VARIABLES = frozenset({
    "query",
    "files",
    "user_id",
    "conversation_id",
    "dialogue_count",
    "app_id",
    "workflow_id",
    "workflow_run_id",
})

# Supplied by the platform at run time; never reported as undefined.
EXTERNAL_NAMESPACES = frozenset({"env", "conversation"})


class VariableResolver:
    """Cross-references provided variables against every reference token."""

    def __init__(self, registry: ContractRegistry | None = None) -> None:
        self.registry = registry or DEFAULT_REGISTRY

    def analyze_variables(self, nodes: Sequence[Node]) -> VariableAnalysis:
        unique: list[Node] = []
        node_ids: set[str] = set()
        for node in nodes:
            if node.id not in node_ids:
                node_ids.add(node.id)
                unique.append(node)

        defined = [
            DefinedVariable(node_id=node.id, variable=name, node_type=node.type)
            for node in unique
            for name in self.registry.outputs_of(node.type, node.config)
        ]
        defined_keys = {(d.node_id, d.variable) for d in defined}

        referenced = [ref for node in unique for ref in extract_references(node)]
        undefined = [
            ref for ref in referenced if not _resolves(ref, defined_keys, node_ids)
        ]

        referenced_keys = {(r.node_id, r.variable) for r in referenced}
        unused = [d for d in defined if (d.node_id, d.variable) not in referenced_keys]

        return VariableAnalysis(
            defined=tuple(defined),
            referenced=tuple(referenced),
            undefined=tuple(undefined),
            unused=tuple(unused),
        )


def _resolves(
    ref: VariableReference,
    defined_keys: set[tuple[str, str]],
    node_ids: set[str],
) -> bool:
    if ref.node_id in node_ids:
        return (ref.node_id, ref.variable) in defined_keys
    if ref.node_id in EXTERNAL_NAMESPACES:
        return True
    if ref.node_id == SYSTEM_NAMESPACE:
        return ref.variable in SYSTEM_VARIABLES
    return False
