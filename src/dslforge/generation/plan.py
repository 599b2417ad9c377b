"""Workflow plans returned by the planning step, and lenient JSON extraction."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from dslforge.model.graph import MODES, WORKFLOW_MODE, Node
from dslforge.parser.errors import ParseError

_FENCE_RE = re.compile(r"```(?:json|yaml|yml)?\s*\n(.*?)```", re.DOTALL)


def strip_fences(text: str) -> str:
    """Return the body of the first fenced code block, or *text* stripped."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json(text: str) -> Any:
    """Decode the JSON object embedded in a model response.

    Code fences and prose around the outermost ``{...}`` are ignored.
    """
    body = strip_fences(text)
    start = body.find("{")
    end = body.rfind("}")
    if start == -1 or end < start:
        raise ParseError("Response does not contain a JSON object")
    try:
        return json.loads(body[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc.msg}", line=exc.lineno, column=exc.colno) from exc


@dataclass(frozen=True)
class InputRef:
    """A planned data dependency: this node reads *variable* from *source*."""

    source: str
    variable: str


@dataclass(frozen=True)
class BranchHint:
    """Explicit wiring: attach this node to *handle* of node *source*."""

    source: str
    handle: str


@dataclass(frozen=True)
class NodePlan:
    id: str
    type: str
    title: str = ""
    description: str = ""
    inputs: tuple[InputRef, ...] = ()
    branch: BranchHint | None = None
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkflowPlan:
    name: str
    nodes: tuple[NodePlan, ...]
    description: str = ""
    mode: str = WORKFLOW_MODE
    complexity: str = "simple"

    def get(self, node_id: str) -> NodePlan | None:
        for plan in self.nodes:
            if plan.id == node_id:
                return plan
        return None


def parse_plan(text: str) -> WorkflowPlan:
    """Parse a planning response into a :class:`WorkflowPlan`.

    Raises :class:`ParseError` when the response is not a usable plan.
    """
    data = extract_json(text)
    if not isinstance(data, Mapping):
        raise ParseError("Plan must be a JSON object")
    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list) or not raw_nodes:
        raise ParseError("Plan must contain a non-empty 'nodes' list")
    mode = data.get("mode") or WORKFLOW_MODE
    if mode not in MODES:
        raise ParseError(f"Unsupported plan mode '{mode}'")
    return WorkflowPlan(
        name=str(data.get("name") or "workflow"),
        description=str(data.get("description") or ""),
        mode=mode,
        complexity=str(data.get("complexity") or "simple"),
        nodes=tuple(_node_plan(raw, i) for i, raw in enumerate(raw_nodes)),
    )


def _node_plan(raw: Any, index: int) -> NodePlan:
    if not isinstance(raw, Mapping):
        raise ParseError(f"Plan node #{index} must be an object")
    node_id = raw.get("id")
    node_type = raw.get("type")
    if not isinstance(node_id, str) or not node_id:
        raise ParseError(f"Plan node #{index} is missing an id")
    if not isinstance(node_type, str) or not node_type:
        raise ParseError(f"Plan node '{node_id}' is missing a type")

    inputs = []
    for item in raw.get("inputs") or []:
        if isinstance(item, Mapping) and item.get("from") and item.get("variable"):
            inputs.append(InputRef(source=str(item["from"]), variable=str(item["variable"])))

    branch = None
    hint = raw.get("branch")
    if isinstance(hint, Mapping) and hint.get("from") and hint.get("handle"):
        branch = BranchHint(source=str(hint["from"]), handle=str(hint["handle"]))

    config = raw.get("config")
    return NodePlan(
        id=node_id,
        type=node_type,
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
        inputs=tuple(inputs),
        branch=branch,
        config=dict(config) if isinstance(config, Mapping) else {},
    )


def parse_node(text: str, plan: NodePlan) -> Node:
    """Build the planned node from a node-synthesis response.

    The response is the node's ``data`` object. Its ``type`` is ignored in
    favour of the planned type; planned config values are defaults that the
    response may override.
    """
    data = extract_json(text)
    if not isinstance(data, Mapping):
        raise ParseError(f"Node '{plan.id}' response must be a JSON object")
    config = {**plan.config, **data}
    config.pop("type", None)
    title = config.pop("title", None)
    return Node(
        id=plan.id,
        type=plan.type,
        title=str(title or plan.title),
        config=config,
    )
