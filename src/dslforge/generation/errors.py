"""Error hierarchy for workflow generation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dslforge.validation.validator import ValidationReport


class GenerationError(Exception):
    """Base error for all generation failures."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class CapabilityError(GenerationError):
    """The text-generation backend failed to produce a response.

    ``retryable`` marks transient failures (rate limits, timeouts) that the
    pipeline may retry under its capability retry policy.
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.retryable = retryable


class SynthesisError(GenerationError):
    """A plan or node response could not be parsed after all attempts."""

    def __init__(
        self,
        message: str,
        *,
        stage: str = "",
        attempts: int = 0,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.stage = stage
        self.attempts = attempts


class RepairBudgetExceeded(GenerationError):
    """The document still failed validation after every allowed repair."""

    def __init__(self, report: ValidationReport, repairs_used: int) -> None:
        self.report = report
        self.repairs_used = repairs_used
        self.feedback = report.feedback_lines()
        super().__init__(
            f"Workflow still invalid after {repairs_used} repair attempt(s):\n"
            + "\n".join(self.feedback)
        )


class PipelineCancelled(GenerationError):
    """The run was cancelled through its :class:`CancelToken`."""
