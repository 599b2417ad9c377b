"""Inputs shared by every validation rule."""

from __future__ import annotations

from dataclasses import dataclass, field

from dslforge.analysis.result import AnalysisResult
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.diagnostic import Severity
from dslforge.model.graph import Document


@dataclass(frozen=True)
class ValidationPolicy:
    """Tunable severities and optional checks.

    Attributes:
        orphan_severity: Severity for disconnected non-terminal nodes.
        orphaned_terminal_severity: Severity for disconnected end/answer nodes.
        unreachable_severity: Severity for connected nodes no path from the
            start node reaches.
        missing_config_severity: Severity for nodes lacking a required
            config field.
        unused_variable_severity: Severity for outputs nobody references.
        check_variable_refs: Report undefined and unused variables.
        check_reference_order: Warn on references to nodes that are not
            upstream of the referencing node.
        allow_loop_cycles: Downgrade cycles whose members are all inside a
            loop construct to INFO.
    """

    orphan_severity: Severity = Severity.WARNING
    orphaned_terminal_severity: Severity = Severity.WARNING
    unreachable_severity: Severity = Severity.WARNING
    missing_config_severity: Severity = Severity.WARNING
    unused_variable_severity: Severity = Severity.WARNING
    check_variable_refs: bool = True
    check_reference_order: bool = True
    allow_loop_cycles: bool = True


STRICT_POLICY = ValidationPolicy(
    orphan_severity=Severity.ERROR,
    orphaned_terminal_severity=Severity.ERROR,
)


@dataclass(frozen=True)
class RuleContext:
    """A document plus its analysis, handed to each rule function."""

    document: Document
    analysis: AnalysisResult
    registry: ContractRegistry = DEFAULT_REGISTRY
    policy: ValidationPolicy = field(default_factory=ValidationPolicy)

    @property
    def node_ids(self) -> set[str]:
        return set(self.document.node_ids)
