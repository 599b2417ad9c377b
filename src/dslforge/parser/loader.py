"""Load workflow documents from YAML/JSON text or plain mappings.

Two shapes are accepted:

* the flat shape ``{nodes, edges, mode, version}`` where each node is
  ``{id, type, title, config}``;
* the platform export shape ``{version, app: {mode, name}, workflow: {graph:
  {nodes, edges}}}`` where each node carries its fields under ``data``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from dslforge.model.graph import (
    DEFAULT_VERSION,
    MODES,
    SOURCE_HANDLE,
    TARGET_HANDLE,
    WORKFLOW_MODE,
    Document,
    Edge,
    Node,
)
from dslforge.parser.errors import ParseError

_LOOP_FLAGS = ("isInIteration", "isInLoop")
_NODE_FIELDS = ("type", "title")


def parse_document(source: str) -> Document:
    """Parse YAML (or JSON, which is a YAML subset) text into a Document."""
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        column = mark.column + 1 if mark is not None else None
        raise ParseError(f"Invalid YAML: {exc}", line=line, column=column) from exc
    return document_from_dict(data)


def load_document(path: str | Path) -> Document:
    """Read and parse the document stored at *path*."""
    return parse_document(Path(path).read_text(encoding="utf-8"))


def document_from_dict(data: Any) -> Document:
    """Build a Document from an already-decoded mapping."""
    if not isinstance(data, Mapping):
        raise ParseError("Document root must be a mapping")

    if "workflow" in data:
        workflow = data.get("workflow")
        if not isinstance(workflow, Mapping):
            raise ParseError("'workflow' must be a mapping")
        graph = workflow.get("graph")
        if not isinstance(graph, Mapping):
            raise ParseError("'workflow.graph' must be a mapping")
        app = data.get("app") or {}
        if not isinstance(app, Mapping):
            raise ParseError("'app' must be a mapping")
        mode = app.get("mode", WORKFLOW_MODE)
        name = app.get("name", "")
        raw_nodes = graph.get("nodes", [])
        raw_edges = graph.get("edges", [])
    else:
        mode = data.get("mode", WORKFLOW_MODE)
        name = data.get("name", "")
        raw_nodes = data.get("nodes", [])
        raw_edges = data.get("edges", [])

    if mode not in MODES:
        raise ParseError(f"Unsupported mode {mode!r}; expected one of {sorted(MODES)}")
    if raw_nodes is None:
        raw_nodes = []
    if raw_edges is None:
        raw_edges = []
    if not isinstance(raw_nodes, list):
        raise ParseError("'nodes' must be a list")
    if not isinstance(raw_edges, list):
        raise ParseError("'edges' must be a list")

    return Document(
        nodes=tuple(_node_from_dict(raw, i) for i, raw in enumerate(raw_nodes)),
        edges=tuple(_edge_from_dict(raw, i) for i, raw in enumerate(raw_edges)),
        mode=mode,
        version=str(data.get("version", DEFAULT_VERSION)),
        name=str(name or ""),
    )


def _node_from_dict(raw: Any, index: int) -> Node:
    if not isinstance(raw, Mapping):
        raise ParseError(f"Node at index {index} must be a mapping")
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise ParseError(f"Node at index {index} has no id")

    data = raw.get("data")
    if isinstance(data, Mapping):
        config = {k: v for k, v in data.items() if k not in _NODE_FIELDS}
        node_type = data.get("type", "")
        title = data.get("title", "")
        in_loop = any(bool(data.get(flag)) for flag in _LOOP_FLAGS)
    else:
        config = raw.get("config") or {}
        if not isinstance(config, Mapping):
            raise ParseError(f"Node '{node_id}' config must be a mapping")
        config = dict(config)
        node_type = raw.get("type", "")
        title = raw.get("title", "")
        in_loop = False
    in_loop = in_loop or bool(raw.get("in_loop", False))

    if not isinstance(node_type, str):
        raise ParseError(f"Node '{node_id}' type must be a string")
    return Node(
        id=node_id,
        type=node_type,
        title=str(title or ""),
        config=config,
        in_loop=in_loop,
    )


def _edge_from_dict(raw: Any, index: int) -> Edge:
    if not isinstance(raw, Mapping):
        raise ParseError(f"Edge at index {index} must be a mapping")
    source = raw.get("source")
    target = raw.get("target")
    if not isinstance(source, str) or not source:
        raise ParseError(f"Edge at index {index} has no source")
    if not isinstance(target, str) or not target:
        raise ParseError(f"Edge at index {index} has no target")
    return Edge(
        source=source,
        target=target,
        source_handle=str(raw.get("sourceHandle", raw.get("source_handle", SOURCE_HANDLE))),
        target_handle=str(raw.get("targetHandle", raw.get("target_handle", TARGET_HANDLE))),
        id=str(raw.get("id") or ""),
    )


def document_to_dict(document: Document) -> dict[str, Any]:
    """Serialize *document* to the flat shape with node fields under ``data``.

    A node whose config has its own ``type`` or ``title`` key keeps the config
    nested under ``config`` instead, so reloading cannot mistake it for the
    node's type or title.
    """
    nodes = [_node_to_dict(node) for node in document.nodes]
    edges = [
        {
            "id": edge.id,
            "source": edge.source,
            "sourceHandle": edge.source_handle,
            "target": edge.target,
            "targetHandle": edge.target_handle,
        }
        for edge in document.edges
    ]
    result: dict[str, Any] = {
        "version": document.version,
        "mode": document.mode,
    }
    if document.name:
        result["name"] = document.name
    result["nodes"] = nodes
    result["edges"] = edges
    return result


def _node_to_dict(node: Node) -> dict[str, Any]:
    if any(key in node.config for key in _NODE_FIELDS):
        flat: dict[str, Any] = {
            "id": node.id,
            "type": node.type,
            "title": node.title,
            "config": dict(node.config),
        }
        if node.in_loop:
            flat["in_loop"] = True
        return flat
    data: dict[str, Any] = {"type": node.type, "title": node.title, **node.config}
    if node.in_loop and not any(flag in data for flag in _LOOP_FLAGS):
        data["isInLoop"] = True
    return {"id": node.id, "data": data}


def dump_document(document: Document) -> str:
    """Serialize *document* to YAML text."""
    return yaml.safe_dump(
        document_to_dict(document),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def document_fingerprint(document: Document) -> str:
    """Stable content hash, usable by callers as a cache key."""
    canonical = json.dumps(document_to_dict(document), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
