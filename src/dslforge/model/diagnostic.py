"""Diagnostic model: structured findings produced by analysis and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

NODES_PATH = "workflow.graph.nodes"
EDGES_PATH = "workflow.graph.edges"


class Severity(Enum):
    """Severity level for a diagnostic message."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(Enum):
    """Which family of defect a diagnostic belongs to."""

    STRUCTURAL = "structural"
    DEPENDENCY = "dependency"
    REFERENCE = "reference"


def node_path(node_id: str) -> str:
    return f"{NODES_PATH}[{node_id}]"


def edge_path(edge_id: str) -> str:
    return f"{EDGES_PATH}[{edge_id}]"


@dataclass(frozen=True)
class Diagnostic:
    """A single finding about a workflow document.

    Attributes:
        code: Machine-readable identifier, e.g. ``MISSING_START_NODE``.
        severity: How serious the issue is.
        message: Human-readable description of the problem.
        category: Defect family (structural, dependency, reference).
        path: Location in the document, e.g. ``workflow.graph.edges[e1]``.
        node_id: The node involved, if applicable.
        edge_id: The edge involved, if applicable.
        details: Extra structured context (cycle members, offending ids...).
        fix: Suggested remediation, if available.
    """

    code: str
    severity: Severity
    message: str
    category: Category = Category.STRUCTURAL
    path: str = NODES_PATH
    node_id: str | None = None
    edge_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    fix: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity is Severity.WARNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "message": self.message,
            "severity": self.severity.value,
            "code": self.code,
        }

    def __str__(self) -> str:
        location = ""
        if self.node_id:
            location = f" [node={self.node_id}]"
        elif self.edge_id:
            location = f" [edge={self.edge_id}]"
        return f"{self.severity.name}{location} {self.code}: {self.message}"
