"""Runtime settings for generation, validation and the API server."""

from __future__ import annotations

from dataclasses import dataclass

from dslforge.model.diagnostic import Severity
from dslforge.model.graph import DEFAULT_VERSION
from dslforge.validation.context import ValidationPolicy


@dataclass(frozen=True)
class DslforgeConfig:
    max_repair_attempts: int = 3
    node_attempts: int = 3  # parse attempts per plan/node response
    capability_attempts: int = 3  # backend tries per call, retryable errors only
    dsl_version: str = DEFAULT_VERSION
    orphans_as_errors: bool = False
    host: str = "127.0.0.1"
    port: int = 5000

    def validation_policy(self) -> ValidationPolicy:
        if self.orphans_as_errors:
            return ValidationPolicy(
                orphan_severity=Severity.ERROR,
                orphaned_terminal_severity=Severity.ERROR,
            )
        return ValidationPolicy()
