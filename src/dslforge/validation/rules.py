"""Validation rules for workflow documents.

Each rule is a function taking a :class:`RuleContext` and returning a list of
Diagnostic objects describing any issues found.
"""

from __future__ import annotations

from collections import Counter, deque

from dslforge.model.diagnostic import (
    EDGES_PATH,
    Category,
    Diagnostic,
    Severity,
    edge_path,
    node_path,
)
from dslforge.model.graph import CHAT_MODE, SOURCE_HANDLE, NodeType
from dslforge.validation.context import RuleContext


# ---------------------------------------------------------------------------
# Structural rules (ERROR severity)
# ---------------------------------------------------------------------------


def check_entry_node(ctx: RuleContext) -> list[Diagnostic]:
    """Exactly one start node required."""
    starts = ctx.document.nodes_of_type(NodeType.START)
    if not starts:
        return [
            Diagnostic(
                code="MISSING_START_NODE",
                severity=Severity.ERROR,
                message="Workflow must have a start node.",
                fix="Add a node of type 'start' declaring the workflow inputs.",
            )
        ]
    if len(starts) > 1:
        ids = [n.id for n in starts]
        return [
            Diagnostic(
                code="MULTIPLE_START_NODES",
                severity=Severity.ERROR,
                message=f"Workflow has {len(ids)} start nodes: {', '.join(ids)}.",
                details={"nodeIds": ids},
                fix="Keep a single start node and merge the others into it.",
            )
        ]
    return []


def check_terminal_node(ctx: RuleContext) -> list[Diagnostic]:
    """A terminal node matching the document mode is required."""
    if ctx.document.mode == CHAT_MODE:
        if not ctx.document.nodes_of_type(NodeType.ANSWER):
            return [
                Diagnostic(
                    code="MISSING_ANSWER_NODE",
                    severity=Severity.ERROR,
                    message="Chat workflow must have an answer node.",
                    fix="Add a node of type 'answer' that replies to the user.",
                )
            ]
        return []
    if not ctx.document.nodes_of_type(NodeType.END):
        return [
            Diagnostic(
                code="MISSING_END_NODE",
                severity=Severity.ERROR,
                message="Workflow must have an end node.",
                fix="Add a node of type 'end' exposing the workflow outputs.",
            )
        ]
    return []


def check_duplicate_node_ids(ctx: RuleContext) -> list[Diagnostic]:
    """Node ids must be unique."""
    counts = Counter(ctx.document.node_ids)
    return [
        Diagnostic(
            code="DUPLICATE_NODE_ID",
            severity=Severity.ERROR,
            message=f"Node id '{nid}' is declared {count} times.",
            path=node_path(nid),
            node_id=nid,
            fix="Give every node a unique id.",
        )
        for nid, count in counts.items()
        if count > 1
    ]


def check_edge_endpoints(ctx: RuleContext) -> list[Diagnostic]:
    """Every edge endpoint must reference an existing node."""
    node_ids = ctx.node_ids
    diagnostics: list[Diagnostic] = []
    for edge in ctx.document.edges:
        if edge.source not in node_ids:
            diagnostics.append(
                Diagnostic(
                    code="INVALID_EDGE_SOURCE",
                    severity=Severity.ERROR,
                    message=f"Edge '{edge.id}' references non-existent source node '{edge.source}'.",
                    path=edge_path(edge.id),
                    edge_id=edge.id,
                    fix=f"Define node '{edge.source}' or remove the edge.",
                )
            )
        if edge.target not in node_ids:
            diagnostics.append(
                Diagnostic(
                    code="INVALID_EDGE_TARGET",
                    severity=Severity.ERROR,
                    message=f"Edge '{edge.id}' references non-existent target node '{edge.target}'.",
                    path=edge_path(edge.id),
                    edge_id=edge.id,
                    fix=f"Define node '{edge.target}' or remove the edge.",
                )
            )
    return diagnostics


def check_entry_no_incoming(ctx: RuleContext) -> list[Diagnostic]:
    """Start nodes must have no incoming edges."""
    diagnostics: list[Diagnostic] = []
    for start in ctx.document.nodes_of_type(NodeType.START):
        incoming = ctx.document.incoming_edges(start.id)
        if incoming:
            diagnostics.append(
                Diagnostic(
                    code="START_HAS_INCOMING",
                    severity=Severity.ERROR,
                    message=f"Start node '{start.id}' has {len(incoming)} incoming edge(s).",
                    path=node_path(start.id),
                    node_id=start.id,
                    fix="Remove incoming edges to the start node.",
                )
            )
    return diagnostics


def check_end_no_outgoing(ctx: RuleContext) -> list[Diagnostic]:
    """End nodes must have no outgoing edges."""
    diagnostics: list[Diagnostic] = []
    for end in ctx.document.nodes_of_type(NodeType.END):
        outgoing = ctx.document.outgoing_edges(end.id)
        if outgoing:
            diagnostics.append(
                Diagnostic(
                    code="END_HAS_OUTGOING",
                    severity=Severity.ERROR,
                    message=f"End node '{end.id}' has {len(outgoing)} outgoing edge(s).",
                    path=node_path(end.id),
                    node_id=end.id,
                    fix="Remove outgoing edges from the end node.",
                )
            )
    return diagnostics


def check_duplicate_edges(ctx: RuleContext) -> list[Diagnostic]:
    """The same connection may not be declared twice."""
    diagnostics: list[Diagnostic] = []
    seen_ids: set[str] = set()
    seen_links: set[tuple[str, str, str]] = set()
    for edge in ctx.document.edges:
        link = (edge.source, edge.source_handle, edge.target)
        if edge.id in seen_ids or link in seen_links:
            diagnostics.append(
                Diagnostic(
                    code="DUPLICATE_EDGE",
                    severity=Severity.ERROR,
                    message=(
                        f"Edge '{edge.id}' duplicates an earlier edge from "
                        f"'{edge.source}' ({edge.source_handle}) to '{edge.target}'."
                    ),
                    path=edge_path(edge.id),
                    edge_id=edge.id,
                    fix="Remove the duplicate edge.",
                )
            )
        seen_ids.add(edge.id)
        seen_links.add(link)
    return diagnostics


def check_branch_declarations(ctx: RuleContext) -> list[Diagnostic]:
    """Multi-output nodes must declare at least one branch, each id unique."""
    diagnostics: list[Diagnostic] = []
    for node in ctx.document.nodes:
        contract = ctx.registry.contract_for(node.type)
        if not contract.multi_output:
            continue
        declared = contract.declared_branches(node.config)
        if not declared:
            diagnostics.append(
                Diagnostic(
                    code="MISSING_BRANCHES",
                    severity=Severity.ERROR,
                    message=f"Node '{node.id}' ({node.type}) declares no branches.",
                    path=node_path(node.id),
                    node_id=node.id,
                    fix="Declare at least one class or case on the node.",
                )
            )
            continue
        for branch, count in Counter(declared).items():
            if count > 1:
                diagnostics.append(
                    Diagnostic(
                        code="DUPLICATE_BRANCH_ID",
                        severity=Severity.ERROR,
                        message=f"Node '{node.id}' declares branch '{branch}' {count} times.",
                        path=node_path(node.id),
                        node_id=node.id,
                        fix="Give every class or case a unique id.",
                    )
                )
    return diagnostics


def check_branch_handles(ctx: RuleContext) -> list[Diagnostic]:
    """Outgoing handles must match the branches a node can emit.

    Every declared branch of a multi-output node needs an outgoing edge; the
    implicit default branch of an if-else may stay unwired.
    """
    diagnostics: list[Diagnostic] = []
    checked: set[str] = set()
    for node in ctx.document.nodes:
        if node.id in checked:
            continue
        checked.add(node.id)
        contract = ctx.registry.contract_for(node.type)
        outgoing = ctx.document.outgoing_edges(node.id)

        if not contract.multi_output:
            for edge in outgoing:
                if edge.source_handle != SOURCE_HANDLE:
                    diagnostics.append(
                        Diagnostic(
                            code="INVALID_SOURCE_HANDLE",
                            severity=Severity.ERROR,
                            message=(
                                f"Edge '{edge.id}' leaves single-output node '{node.id}' "
                                f"through handle '{edge.source_handle}'."
                            ),
                            path=edge_path(edge.id),
                            node_id=node.id,
                            edge_id=edge.id,
                            fix=f"Use source handle '{SOURCE_HANDLE}'.",
                        )
                    )
            continue

        valid = contract.branches_for(node.config)
        wired = {edge.source_handle for edge in outgoing}
        for branch in contract.declared_branches(node.config):
            if branch not in wired:
                diagnostics.append(
                    Diagnostic(
                        code="BRANCH_WITHOUT_EDGE",
                        severity=Severity.ERROR,
                        message=f"Branch '{branch}' of node '{node.id}' has no outgoing edge.",
                        path=node_path(node.id),
                        node_id=node.id,
                        details={"branch": branch},
                        fix=f"Connect branch '{branch}' to a downstream node.",
                    )
                )
        for edge in outgoing:
            if edge.source_handle not in valid:
                diagnostics.append(
                    Diagnostic(
                        code="UNKNOWN_BRANCH_HANDLE",
                        severity=Severity.ERROR,
                        message=(
                            f"Edge '{edge.id}' uses handle '{edge.source_handle}' which is "
                            f"not a branch of node '{node.id}'."
                        ),
                        path=edge_path(edge.id),
                        node_id=node.id,
                        edge_id=edge.id,
                        details={"valid": valid},
                        fix=f"Use one of: {', '.join(valid)}.",
                    )
                )
    return diagnostics


# ---------------------------------------------------------------------------
# Dependency rules
# ---------------------------------------------------------------------------


def check_cycles(ctx: RuleContext) -> list[Diagnostic]:
    """Cycles are fatal unless every member sits inside a loop construct."""
    diagnostics: list[Diagnostic] = []
    for cycle in ctx.analysis.dependencies.circular_dependencies:
        rendered = " -> ".join([*cycle, cycle[0]])
        members = [ctx.document.get_node(nid) for nid in cycle]
        controlled = all(n is not None and n.in_loop for n in members)
        if controlled and ctx.policy.allow_loop_cycles:
            diagnostics.append(
                Diagnostic(
                    code="LOOP_CYCLE",
                    severity=Severity.INFO,
                    message=f"Loop cycle: {rendered}.",
                    category=Category.DEPENDENCY,
                    path=node_path(cycle[0]),
                    node_id=cycle[0],
                    details={"cycle": list(cycle)},
                )
            )
            continue
        diagnostics.append(
            Diagnostic(
                code="CIRCULAR_DEPENDENCY",
                severity=Severity.ERROR,
                message=f"Circular dependency detected: {rendered}.",
                category=Category.DEPENDENCY,
                path=EDGES_PATH,
                node_id=cycle[0],
                details={"cycle": list(cycle)},
                fix="Remove one of the edges closing the cycle.",
            )
        )
    return diagnostics


def check_orphans(ctx: RuleContext) -> list[Diagnostic]:
    """Non-entry nodes without any edge are orphans."""
    diagnostics: list[Diagnostic] = []
    for nid in ctx.analysis.dependencies.orphan_nodes:
        node = ctx.document.get_node(nid)
        terminal = node is not None and node.is_terminal
        severity = (
            ctx.policy.orphaned_terminal_severity if terminal else ctx.policy.orphan_severity
        )
        diagnostics.append(
            Diagnostic(
                code="ORPHAN_NODE",
                severity=severity,
                message=f"Node '{nid}' is not connected to any other node.",
                category=Category.REFERENCE,
                path=node_path(nid),
                node_id=nid,
                fix=f"Connect '{nid}' to the workflow or remove it.",
            )
        )
    return diagnostics


def _reachable_from(ctx: RuleContext, start_id: str) -> set[str]:
    node_ids = ctx.node_ids
    reachable = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        for edge in ctx.document.outgoing_edges(current):
            if edge.target in node_ids and edge.target not in reachable:
                reachable.add(edge.target)
                queue.append(edge.target)
    return reachable


def check_reachability(ctx: RuleContext) -> list[Diagnostic]:
    """Connected nodes must be reachable from the start node."""
    starts = ctx.document.nodes_of_type(NodeType.START)
    if len(starts) != 1:
        return []  # check_entry_node reports this
    start = starts[0]
    reachable = _reachable_from(ctx, start.id)
    orphans = set(ctx.analysis.dependencies.orphan_nodes)
    diagnostics: list[Diagnostic] = []
    for node in ctx.document.nodes:
        if node.id in reachable or node.id in orphans or node.is_entry:
            continue
        diagnostics.append(
            Diagnostic(
                code="UNREACHABLE_NODE",
                severity=ctx.policy.unreachable_severity,
                message=f"Node '{node.id}' is not reachable from start node '{start.id}'.",
                category=Category.REFERENCE,
                path=node_path(node.id),
                node_id=node.id,
                fix=f"Add an edge path from '{start.id}' to '{node.id}'.",
            )
        )
    return diagnostics


# ---------------------------------------------------------------------------
# Reference rules
# ---------------------------------------------------------------------------


def _reference_path(owner_id: str, config_path: str) -> str:
    base = node_path(owner_id)
    return f"{base}.{config_path}" if config_path else base


def check_undefined_references(ctx: RuleContext) -> list[Diagnostic]:
    """Every reference must resolve to a variable some node provides."""
    if not ctx.policy.check_variable_refs:
        return []
    return [
        Diagnostic(
            code="UNDEFINED_VARIABLE",
            severity=Severity.ERROR,
            message=f"Node '{ref.owner_id}' references undefined variable {ref.token}.",
            category=Category.REFERENCE,
            path=_reference_path(ref.owner_id, ref.path),
            node_id=ref.owner_id,
            details={"nodeId": ref.node_id, "variable": ref.variable},
            fix=f"Reference an output that node '{ref.node_id}' actually provides.",
        )
        for ref in ctx.analysis.variables.undefined
    ]


def check_unused_variables(ctx: RuleContext) -> list[Diagnostic]:
    """Provided variables should be consumed somewhere."""
    if not ctx.policy.check_variable_refs:
        return []
    return [
        Diagnostic(
            code="UNUSED_VARIABLE",
            severity=ctx.policy.unused_variable_severity,
            message=f"Variable '{var.key}' is defined but never used.",
            category=Category.REFERENCE,
            path=node_path(var.node_id),
            node_id=var.node_id,
            details={"variable": var.variable},
        )
        for var in ctx.analysis.variables.unused
    ]


def _ancestors(ctx: RuleContext, node_id: str, cache: dict[str, set[str]]) -> set[str]:
    if node_id in cache:
        return cache[node_id]
    graph = ctx.analysis.dependencies.nodes
    found: set[str] = set()
    pending = list(graph[node_id].depends_on) if node_id in graph else []
    while pending:
        current = pending.pop()
        if current in found:
            continue
        found.add(current)
        if current in graph:
            pending.extend(graph[current].depends_on)
    cache[node_id] = found
    return found


def check_reference_order(ctx: RuleContext) -> list[Diagnostic]:
    """References should point at nodes that run before the referencing node. WARNING."""
    if not (ctx.policy.check_variable_refs and ctx.policy.check_reference_order):
        return []
    variables = ctx.analysis.variables
    cache: dict[str, set[str]] = {}
    diagnostics: list[Diagnostic] = []
    for ref in variables.referenced:
        if not variables.is_defined(ref.node_id, ref.variable):
            continue
        owner = ctx.document.get_node(ref.owner_id)
        if owner is None or owner.in_loop:
            continue
        if ref.node_id in _ancestors(ctx, ref.owner_id, cache):
            continue
        diagnostics.append(
            Diagnostic(
                code="REFERENCE_NOT_UPSTREAM",
                severity=Severity.WARNING,
                message=(
                    f"Node '{ref.owner_id}' references {ref.token} but '{ref.node_id}' "
                    "is not upstream of it."
                ),
                category=Category.REFERENCE,
                path=_reference_path(ref.owner_id, ref.path),
                node_id=ref.owner_id,
                details={"nodeId": ref.node_id, "variable": ref.variable},
                fix=f"Add an edge path from '{ref.node_id}' to '{ref.owner_id}'.",
            )
        )
    return diagnostics


# ---------------------------------------------------------------------------
# Semantic rules (WARNING severity)
# ---------------------------------------------------------------------------


def check_type_known(ctx: RuleContext) -> list[Diagnostic]:
    """Node type values should be recognized. WARNING severity."""
    known = ctx.registry.known_types()
    return [
        Diagnostic(
            code="UNKNOWN_NODE_TYPE",
            severity=Severity.WARNING,
            message=f"Node '{node.id}' has unrecognized type '{node.type}'.",
            path=node_path(node.id),
            node_id=node.id,
            fix=f"Use one of: {', '.join(sorted(known))}.",
        )
        for node in ctx.document.nodes
        if not ctx.registry.is_known(node.type)
    ]


def check_required_config(ctx: RuleContext) -> list[Diagnostic]:
    """Nodes must carry the config fields their type needs to run."""
    diagnostics: list[Diagnostic] = []
    for node in ctx.document.nodes:
        for group in ctx.registry.missing_config(node.type, node.config):
            fields = " or ".join(f"'{key}'" for key in group)
            diagnostics.append(
                Diagnostic(
                    code="MISSING_REQUIRED_CONFIG",
                    severity=ctx.policy.missing_config_severity,
                    message=f"Node '{node.id}' ({node.type}) is missing {fields}.",
                    path=f"{node_path(node.id)}.{group[0]}",
                    node_id=node.id,
                    details={"fields": list(group)},
                    fix=f"Set {fields} in the config of '{node.id}'.",
                )
            )
    return diagnostics


# ---------------------------------------------------------------------------
# Rule registry
# ---------------------------------------------------------------------------

ALL_RULES = [
    check_entry_node,
    check_terminal_node,
    check_duplicate_node_ids,
    check_edge_endpoints,
    check_entry_no_incoming,
    check_end_no_outgoing,
    check_duplicate_edges,
    check_branch_declarations,
    check_branch_handles,
    check_cycles,
    check_orphans,
    check_reachability,
    check_undefined_references,
    check_unused_variables,
    check_reference_order,
    check_type_known,
    check_required_config,
]
