"""dslforge model layer -- public type re-exports."""

from dslforge.model.contracts import (
    DEFAULT_REGISTRY,
    ContractRegistry,
    NodeTypeContract,
    branches_of,
    outputs_of,
)
from dslforge.model.diagnostic import Category, Diagnostic, Severity
from dslforge.model.graph import (
    CHAT_MODE,
    WORKFLOW_MODE,
    Document,
    Edge,
    Node,
    NodeType,
)

__all__ = [
    # graph
    "Node",
    "Edge",
    "Document",
    "NodeType",
    "WORKFLOW_MODE",
    "CHAT_MODE",
    # diagnostic
    "Severity",
    "Category",
    "Diagnostic",
    # contracts
    "NodeTypeContract",
    "ContractRegistry",
    "DEFAULT_REGISTRY",
    "outputs_of",
    "branches_of",
]
