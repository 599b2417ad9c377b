"""Core graph model: Node, Edge, and Document dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

WORKFLOW_MODE = "workflow"
CHAT_MODE = "advanced-chat"
MODES = frozenset({WORKFLOW_MODE, CHAT_MODE})

DEFAULT_VERSION = "0.1.5"

SOURCE_HANDLE = "source"
TARGET_HANDLE = "target"


class NodeType(Enum):
    """Closed set of node kinds understood by the engine."""

    START = "start"
    END = "end"
    ANSWER = "answer"
    LLM = "llm"
    KNOWLEDGE_RETRIEVAL = "knowledge-retrieval"
    QUESTION_CLASSIFIER = "question-classifier"
    IF_ELSE = "if-else"
    CODE = "code"
    TEMPLATE_TRANSFORM = "template-transform"
    VARIABLE_AGGREGATOR = "variable-aggregator"
    VARIABLE_ASSIGNER = "variable-assigner"
    ITERATION = "iteration"
    LOOP = "loop"
    PARAMETER_EXTRACTOR = "parameter-extractor"
    HTTP_REQUEST = "http-request"
    TOOL = "tool"
    AGENT = "agent"
    DOCUMENT_EXTRACTOR = "document-extractor"
    LIST_OPERATOR = "list-operator"

    @classmethod
    def lookup(cls, value: str) -> NodeType | None:
        """Return the member for *value*, or None for unrecognized types."""
        try:
            return cls(value)
        except ValueError:
            return None


TERMINAL_TYPES = frozenset({NodeType.END, NodeType.ANSWER})


@dataclass(frozen=True)
class Node:
    """A single typed unit of work in the workflow graph."""

    id: str
    type: str
    title: str = ""
    config: dict[str, Any] = field(default_factory=dict)
    in_loop: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("Node id must be a non-empty string")
        if not isinstance(self.type, str):
            raise ValueError(f"Node '{self.id}' type must be a string")

    @property
    def kind(self) -> NodeType | None:
        return NodeType.lookup(self.type)

    @property
    def is_entry(self) -> bool:
        return self.kind is NodeType.START

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_TYPES

    @property
    def display_name(self) -> str:
        """Return the title if set, otherwise the id."""
        return self.title or self.id


@dataclass(frozen=True)
class Edge:
    """A directed connection between two nodes, tagged with a branch handle."""

    source: str
    target: str
    source_handle: str = SOURCE_HANDLE
    target_handle: str = TARGET_HANDLE
    id: str = ""

    def __post_init__(self) -> None:
        if not self.source or not self.target:
            raise ValueError("Edge must have non-empty source and target")
        if not self.id:
            object.__setattr__(
                self, "id", f"{self.source}-{self.source_handle}-{self.target}"
            )


@dataclass(frozen=True)
class Document:
    """An immutable workflow document: nodes in declaration order plus edges."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    mode: str = WORKFLOW_MODE
    version: str = DEFAULT_VERSION
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))

    @property
    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def get_node(self, node_id: str) -> Node | None:
        """Return the first node declared with *node_id*."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_type(self, node_type: NodeType) -> list[Node]:
        return [n for n in self.nodes if n.kind is node_type]

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        """Return all edges originating from the given node."""
        return [e for e in self.edges if e.source == node_id]

    def incoming_edges(self, node_id: str) -> list[Edge]:
        """Return all edges arriving at the given node."""
        return [e for e in self.edges if e.target == node_id]
