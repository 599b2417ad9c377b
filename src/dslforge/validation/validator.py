"""Workflow validator: runs analysis plus all validation rules and reports diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from dslforge.analysis.analyzer import WorkflowAnalyzer
from dslforge.analysis.result import AnalysisResult
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.diagnostic import Diagnostic, Severity
from dslforge.model.graph import Document
from dslforge.validation.context import RuleContext, ValidationPolicy
from dslforge.validation.rules import ALL_RULES

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when validation produces ERROR-severity diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [str(d) for d in diagnostics if d.is_error]
        super().__init__(
            f"Validation failed with {len(messages)} error(s): " + "; ".join(messages)
        )


RuleFunc = Callable[[RuleContext], list[Diagnostic]]


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating one document.

    ``valid`` is true exactly when no ERROR diagnostic was produced; warnings
    and info diagnostics never affect it.
    """

    diagnostics: tuple[Diagnostic, ...]
    analysis: AnalysisResult

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def infos(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.INFO]

    @property
    def valid(self) -> bool:
        return not self.errors

    def codes(self) -> list[str]:
        return [d.code for d in self.diagnostics]

    def feedback_lines(self) -> list[str]:
        """Literal error then warning lines, as handed to a repair request."""
        return [str(d) for d in self.errors] + [str(d) for d in self.warnings]

    def summary(self) -> str:
        status = "valid" if self.valid else "invalid"
        return f"{status}: {len(self.errors)} error(s), {len(self.warnings)} warning(s)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [d.to_dict() for d in self.errors],
            "warnings": [d.to_dict() for d in self.warnings],
        }


class WorkflowValidator:
    """Composes analysis with the rule set under a :class:`ValidationPolicy`."""

    def __init__(
        self,
        registry: ContractRegistry | None = None,
        policy: ValidationPolicy | None = None,
        extra_rules: list[RuleFunc] | None = None,
    ) -> None:
        self.registry = registry or DEFAULT_REGISTRY
        self.policy = policy or ValidationPolicy()
        self.analyzer = WorkflowAnalyzer(self.registry)
        self.rules: list[RuleFunc] = list(ALL_RULES)
        if extra_rules:
            self.rules.extend(extra_rules)

    def validate(self, document: Document) -> ValidationReport:
        analysis = self.analyzer.analyze(document)
        ctx = RuleContext(
            document=document,
            analysis=analysis,
            registry=self.registry,
            policy=self.policy,
        )
        diagnostics: list[Diagnostic] = []
        for rule in self.rules:
            diagnostics.extend(rule(ctx))
        report = ValidationReport(diagnostics=tuple(diagnostics), analysis=analysis)
        logger.debug("Validated %d node(s): %s", len(document.nodes), report.summary())
        return report


def validate(
    document: Document,
    policy: ValidationPolicy | None = None,
    extra_rules: list[RuleFunc] | None = None,
    registry: ContractRegistry | None = None,
) -> ValidationReport:
    """Run all validation rules against *document*."""
    return WorkflowValidator(registry, policy, extra_rules).validate(document)


def validate_or_raise(
    document: Document,
    policy: ValidationPolicy | None = None,
    extra_rules: list[RuleFunc] | None = None,
    registry: ContractRegistry | None = None,
) -> ValidationReport:
    """Run validation; raises :class:`ValidationError` if any ERROR diagnostics exist.

    Returns the report when no errors are found.
    """
    report = validate(document, policy=policy, extra_rules=extra_rules, registry=registry)
    if report.errors:
        raise ValidationError(report.errors)
    return report
