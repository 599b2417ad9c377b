"""Event types emitted while generating a workflow."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineStarted:
    description: str


@dataclass(frozen=True)
class StateChanged:
    previous: str
    current: str


@dataclass(frozen=True)
class PlanCreated:
    name: str
    node_count: int


@dataclass(frozen=True)
class NodeSynthesized:
    node_id: str
    node_type: str
    attempts: int


@dataclass(frozen=True)
class ValidationCompleted:
    valid: bool
    error_count: int
    warning_count: int


@dataclass(frozen=True)
class RepairRequested:
    attempt: int
    feedback: tuple[str, ...]


@dataclass(frozen=True)
class CapabilityRetrying:
    attempt: int
    delay: float
    error: str


@dataclass(frozen=True)
class PipelineCompleted:
    name: str
    repairs_used: int


@dataclass(frozen=True)
class PipelineFailed:
    error: str
    repairs_used: int
