"""Prompt construction for the planning, node-synthesis and repair steps."""

from __future__ import annotations

import json
from collections.abc import Sequence

from dslforge.analysis.references import format_reference
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.graph import Node
from dslforge.generation.plan import NodePlan

PLAN_SYSTEM = """You are a workflow planning expert. Analyze the request and output a workflow plan.

Output JSON only:
{
  "name": "workflow name",
  "description": "what the workflow does",
  "mode": "workflow | advanced-chat",
  "complexity": "simple | medium | complex",
  "nodes": [
    {
      "id": "unique id such as start, llm_answer, classify_intent",
      "type": "node type",
      "title": "node title",
      "description": "what the node does",
      "inputs": [{"from": "source node id", "variable": "variable name"}],
      "branch": {"from": "branching node id", "handle": "class or case id"},
      "config": {}
    }
  ]
}

Rules:
1. Exactly one start node, declared first.
2. A workflow ends in an end node; a chat workflow replies through an answer node.
3. A question-classifier lists its classes (id, name) in config.classes.
4. An if-else lists its cases (case_id, conditions) in config.cases; the else branch is "false".
5. Nodes downstream of a branch give the branch they hang off in "branch".
"""

NODE_SYSTEM = """Generate the data object of one workflow node. Output pure JSON, no markdown.

Reference upstream variables with {{#node_id.variable#}} inside text, or with
["node_id", "variable"] in selector fields."""

REPAIR_SYSTEM = """You fix workflow documents. Output the complete corrected document
as YAML with the same shape as the input, and nothing else."""


def build_plan_prompt(description: str, node_types: Sequence[str], mode: str = "") -> str:
    lines = [f"Request: {description}", "", f"Available node types: {', '.join(node_types)}"]
    if mode:
        lines.append(f"Mode: {mode}")
    return "\n".join(lines)


def build_node_prompt(
    plan: NodePlan,
    existing: Sequence[Node],
    registry: ContractRegistry | None = None,
) -> str:
    """Describe one planned node plus the variables upstream nodes expose."""
    registry = registry or DEFAULT_REGISTRY
    available = [
        format_reference(node.id, name)
        for node in existing
        for name in registry.outputs_of(node.type, node.config)
    ]
    lines = [
        f"Node type: {plan.type}",
        f"Node id: {plan.id}",
        f"Title: {plan.title or plan.id}",
    ]
    if plan.description:
        lines.append(f"Purpose: {plan.description}")
    if plan.inputs:
        lines.append(
            "Reads: " + ", ".join(format_reference(i.source, i.variable) for i in plan.inputs)
        )
    if plan.config:
        lines.extend(["Requested config:", json.dumps(plan.config, indent=2, ensure_ascii=False)])
    lines.append("Available variables: " + (", ".join(available) if available else "none"))
    return "\n".join(lines)


def build_repair_prompt(document_yaml: str, feedback: Sequence[str]) -> str:
    """Ask for a corrected document, quoting the validator lines verbatim."""
    return "\n".join([
        "The workflow document below failed validation.",
        "",
        "Document:",
        document_yaml.rstrip(),
        "",
        "Validation problems:",
        *feedback,
    ])


def with_parse_error(prompt: str, error: Exception) -> str:
    """Re-request *prompt* after an unparsable response."""
    return f"{prompt}\n\nThe previous response could not be parsed: {error}\nReturn valid output only."
