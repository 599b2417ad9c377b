"""Event system: bus and event types for the generation lifecycle."""

from dslforge.events.bus import EventBus, EventRecorder
from dslforge.events.types import (
    CapabilityRetrying,
    NodeSynthesized,
    PipelineCompleted,
    PipelineFailed,
    PipelineStarted,
    PlanCreated,
    RepairRequested,
    StateChanged,
    ValidationCompleted,
)

__all__ = [
    "EventBus",
    "EventRecorder",
    "CapabilityRetrying",
    "NodeSynthesized",
    "PipelineCompleted",
    "PipelineFailed",
    "PipelineStarted",
    "PlanCreated",
    "RepairRequested",
    "StateChanged",
    "ValidationCompleted",
]
