"""Analysis result types: dependency graph, variable analysis, issues."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dslforge.model.diagnostic import Severity


@dataclass(frozen=True)
class VariableReference:
    """One occurrence of a ``{{#node.variable#}}`` reference inside a node config.

    Attributes:
        owner_id: Node whose config contains the reference.
        node_id: Node being referenced.
        variable: Variable name on the referenced node.
        token: Literal reference text, for reporting.
        path: Config path where the reference was found.
    """

    owner_id: str
    node_id: str
    variable: str
    token: str
    path: str = ""

    @property
    def key(self) -> str:
        return f"{self.node_id}.{self.variable}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "ownerId": self.owner_id,
            "nodeId": self.node_id,
            "variable": self.variable,
            "token": self.token,
            "path": self.path,
        }


@dataclass(frozen=True)
class DefinedVariable:
    """A variable a node exposes to downstream nodes."""

    node_id: str
    variable: str
    node_type: str

    @property
    def key(self) -> str:
        return f"{self.node_id}.{self.variable}"

    def to_dict(self) -> dict[str, Any]:
        return {"nodeId": self.node_id, "variable": self.variable, "type": self.node_type}


@dataclass(frozen=True)
class NodeDependency:
    """Edge-derived dependencies of a single node."""

    node_id: str
    depends_on: tuple[str, ...] = ()
    depended_by: tuple[str, ...] = ()
    variable_references: tuple[VariableReference, ...] = ()
    provides: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "dependsOn": list(self.depends_on),
            "dependedBy": list(self.depended_by),
            "variableReferences": [r.to_dict() for r in self.variable_references],
            "providesVariables": list(self.provides),
        }


@dataclass(frozen=True)
class DependencyGraph:
    """Aggregate dependency view of a document."""

    nodes: dict[str, NodeDependency] = field(default_factory=dict)
    topological_order: tuple[str, ...] = ()
    circular_dependencies: tuple[tuple[str, ...], ...] = ()
    orphan_nodes: tuple[str, ...] = ()

    @property
    def has_cycles(self) -> bool:
        return bool(self.circular_dependencies)

    def to_dict(self) -> dict[str, Any]:
        return {
            "topologicalOrder": list(self.topological_order),
            "circularDependencies": [list(c) for c in self.circular_dependencies],
            "orphanNodes": list(self.orphan_nodes),
            "nodes": {nid: dep.to_dict() for nid, dep in self.nodes.items()},
        }


@dataclass(frozen=True)
class VariableAnalysis:
    """Cross-reference of defined variables against referenced ones."""

    defined: tuple[DefinedVariable, ...] = ()
    referenced: tuple[VariableReference, ...] = ()
    undefined: tuple[VariableReference, ...] = ()
    unused: tuple[DefinedVariable, ...] = ()

    def is_defined(self, node_id: str, variable: str) -> bool:
        return any(d.node_id == node_id and d.variable == variable for d in self.defined)

    def references_from(self, owner_id: str) -> list[VariableReference]:
        return [r for r in self.referenced if r.owner_id == owner_id]

    def to_dict(self) -> dict[str, Any]:
        return {
            "definedVariables": [d.to_dict() for d in self.defined],
            "referencedVariables": [r.to_dict() for r in self.referenced],
            "undefinedReferences": [r.to_dict() for r in self.undefined],
            "unusedVariables": [d.to_dict() for d in self.unused],
        }


@dataclass(frozen=True)
class AnalysisIssue:
    """A raw finding of the analysis pass, before validation policy applies."""

    severity: Severity
    code: str
    message: str
    node_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.severity.value,
            "code": self.code,
            "message": self.message,
        }
        if self.node_id is not None:
            result["nodeId"] = self.node_id
        return result


@dataclass(frozen=True)
class AnalysisResult:
    """Dependencies, variable analysis and issues for one document."""

    dependencies: DependencyGraph
    variables: VariableAnalysis
    issues: tuple[AnalysisIssue, ...] = ()

    @property
    def errors(self) -> list[AnalysisIssue]:
        return [i for i in self.issues if i.severity is Severity.ERROR]

    def to_dict(self) -> dict[str, Any]:
        return {
            "dependencies": self.dependencies.to_dict(),
            "variables": self.variables.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
        }
