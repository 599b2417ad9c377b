"""Edge inference and document assembly for synthesized nodes."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from dslforge.analysis.references import extract_references
from dslforge.generation.plan import NodePlan, WorkflowPlan
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.graph import DEFAULT_VERSION, SOURCE_HANDLE, Document, Edge, Node, NodeType

logger = logging.getLogger(__name__)


def infer_edges(
    nodes: Sequence[Node],
    plans: Sequence[NodePlan] = (),
    registry: ContractRegistry | None = None,
) -> list[Edge]:
    """Wire each non-entry node to exactly one earlier node.

    Source selection, in priority order:

    1. the plan's explicit branch hint;
    2. the latest earlier node the node references (config tokens or
       planned inputs);
    3. the immediately preceding node.

    A candidate that cannot emit edges (an end node), or no candidate at all,
    falls back to the entry node. A multi-output source reached without a
    hint is attached through its first branch not yet wired.
    """
    registry = registry or DEFAULT_REGISTRY
    plan_by_id = {plan.id: plan for plan in plans}
    position = {}
    for i, node in enumerate(nodes):
        position.setdefault(node.id, i)
    entry = next((n for n in nodes if n.is_entry), None)
    wired: dict[str, set[str]] = {}

    edges: list[Edge] = []
    for i, node in enumerate(nodes):
        if node.is_entry:
            continue
        plan = plan_by_id.get(node.id)
        hint = plan.branch if plan is not None else None
        if hint is not None and position.get(hint.source, i) < i:
            source = nodes[position[hint.source]]
            handle = hint.handle
        else:
            source = _pick_source(nodes, i, plan, position, entry)
            if source is None:
                logger.debug("No upstream candidate for node '%s'", node.id)
                continue
            handle = _next_handle(source, wired.get(source.id, set()), registry)
        wired.setdefault(source.id, set()).add(handle)
        edges.append(Edge(source=source.id, target=node.id, source_handle=handle))
    return edges


def _pick_source(
    nodes: Sequence[Node],
    index: int,
    plan: NodePlan | None,
    position: dict[str, int],
    entry: Node | None,
) -> Node | None:
    node = nodes[index]
    referenced = {ref.node_id for ref in extract_references(node)}
    if plan is not None:
        referenced.update(item.source for item in plan.inputs)
    earlier = [position[nid] for nid in referenced if position.get(nid, index) < index]

    candidate: Node | None = None
    if earlier:
        candidate = nodes[max(earlier)]
    elif index > 0:
        candidate = nodes[index - 1]

    if candidate is None or candidate.kind is NodeType.END:
        candidate = entry
    if candidate is not None and candidate.id == node.id:
        return None
    return candidate


def _next_handle(source: Node, used: set[str], registry: ContractRegistry) -> str:
    if not registry.is_multi_output(source.type):
        return SOURCE_HANDLE
    branches = registry.branches_of(source.type, source.config)
    for branch in branches:
        if branch not in used:
            return branch
    return branches[0] if branches else SOURCE_HANDLE


def assemble_document(
    plan: WorkflowPlan,
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    version: str = DEFAULT_VERSION,
) -> Document:
    """Combine synthesized nodes and inferred edges into a :class:`Document`."""
    return Document(
        nodes=tuple(nodes),
        edges=tuple(edges),
        mode=plan.mode,
        version=version,
        name=plan.name,
    )
