"""Dependency and variable analysis of workflow documents."""

from dslforge.analysis.analyzer import WorkflowAnalyzer, analyze
from dslforge.analysis.dependency import DependencyAnalyzer
from dslforge.analysis.references import REFERENCE_PATTERN, extract_references, format_reference
from dslforge.analysis.result import (
    AnalysisIssue,
    AnalysisResult,
    DefinedVariable,
    DependencyGraph,
    NodeDependency,
    VariableAnalysis,
    VariableReference,
)
from dslforge.analysis.variables import SYSTEM_VARIABLES, VariableResolver

__all__ = [
    "analyze",
    "WorkflowAnalyzer",
    "DependencyAnalyzer",
    "VariableResolver",
    "REFERENCE_PATTERN",
    "SYSTEM_VARIABLES",
    "extract_references",
    "format_reference",
    "AnalysisIssue",
    "AnalysisResult",
    "DefinedVariable",
    "DependencyGraph",
    "NodeDependency",
    "VariableAnalysis",
    "VariableReference",
]
