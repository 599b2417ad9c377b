"""Analysis facade: runs the dependency analyzer and variable resolver together."""

from __future__ import annotations

import logging

from dslforge.analysis.dependency import DependencyAnalyzer
from dslforge.analysis.result import (
    AnalysisIssue,
    AnalysisResult,
    DependencyGraph,
    VariableAnalysis,
)
from dslforge.analysis.variables import VariableResolver
from dslforge.model.contracts import ContractRegistry
from dslforge.model.diagnostic import Severity
from dslforge.model.graph import Document

logger = logging.getLogger(__name__)


class WorkflowAnalyzer:
    """Produces an :class:`AnalysisResult` for a document.

    Stateless apart from the registry it was given, so one instance can be
    shared across threads.
    """

    def __init__(self, registry: ContractRegistry | None = None) -> None:
        self.dependency_analyzer = DependencyAnalyzer(registry)
        self.variable_resolver = VariableResolver(registry)

    def analyze(self, document: Document) -> AnalysisResult:
        dependencies = self.dependency_analyzer.analyze(document.nodes, document.edges)
        variables = self.variable_resolver.analyze_variables(document.nodes)
        issues = collect_issues(dependencies, variables)
        logger.debug(
            "Analyzed %d nodes: %d cycle(s), %d orphan(s), %d undefined reference(s)",
            len(dependencies.nodes),
            len(dependencies.circular_dependencies),
            len(dependencies.orphan_nodes),
            len(variables.undefined),
        )
        return AnalysisResult(dependencies=dependencies, variables=variables, issues=tuple(issues))


def collect_issues(
    dependencies: DependencyGraph, variables: VariableAnalysis
) -> list[AnalysisIssue]:
    issues: list[AnalysisIssue] = []
    for cycle in dependencies.circular_dependencies:
        issues.append(
            AnalysisIssue(
                severity=Severity.ERROR,
                code="CIRCULAR_DEPENDENCY",
                message=f"Circular dependency detected: {' -> '.join([*cycle, cycle[0]])}",
                node_id=cycle[0],
                details={"cycle": list(cycle)},
            )
        )
    for node_id in dependencies.orphan_nodes:
        issues.append(
            AnalysisIssue(
                severity=Severity.WARNING,
                code="ORPHAN_NODE",
                message=f"Node '{node_id}' is not connected to the workflow",
                node_id=node_id,
            )
        )
    for ref in variables.undefined:
        issues.append(
            AnalysisIssue(
                severity=Severity.ERROR,
                code="UNDEFINED_VARIABLE",
                message=f"Reference to undefined variable: {ref.token}",
                node_id=ref.owner_id,
                details={"nodeId": ref.node_id, "variable": ref.variable},
            )
        )
    for unused in variables.unused:
        issues.append(
            AnalysisIssue(
                severity=Severity.WARNING,
                code="UNUSED_VARIABLE",
                message=f"Variable '{unused.key}' is defined but never used",
                node_id=unused.node_id,
                details={"variable": unused.variable},
            )
        )
    return issues


def analyze(document: Document, registry: ContractRegistry | None = None) -> AnalysisResult:
    """Analyze *document* with a fresh :class:`WorkflowAnalyzer`."""
    return WorkflowAnalyzer(registry).analyze(document)
