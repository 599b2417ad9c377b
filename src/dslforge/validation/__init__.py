"""Structural validation of workflow documents."""

from dslforge.validation.context import STRICT_POLICY, RuleContext, ValidationPolicy
from dslforge.validation.rules import ALL_RULES
from dslforge.validation.validator import (
    RuleFunc,
    ValidationError,
    ValidationReport,
    WorkflowValidator,
    validate,
    validate_or_raise,
)

__all__ = [
    "ALL_RULES",
    "RuleContext",
    "RuleFunc",
    "STRICT_POLICY",
    "ValidationError",
    "ValidationPolicy",
    "ValidationReport",
    "WorkflowValidator",
    "validate",
    "validate_or_raise",
]
