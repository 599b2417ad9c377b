"""Workflow generation: planning, node synthesis, edge inference and repair."""

from dslforge.generation.assembly import assemble_document, infer_edges
from dslforge.generation.backend import GenerationBackend, ScriptedBackend
from dslforge.generation.errors import (
    CapabilityError,
    GenerationError,
    PipelineCancelled,
    RepairBudgetExceeded,
    SynthesisError,
)
from dslforge.generation.pipeline import (
    CancelToken,
    GenerationPipeline,
    GenerationRequest,
    GenerationResult,
    PipelineState,
    generate_workflow,
)
from dslforge.generation.plan import (
    BranchHint,
    InputRef,
    NodePlan,
    WorkflowPlan,
    extract_json,
    parse_node,
    parse_plan,
)
from dslforge.generation.retry import BackoffConfig, RetryPolicy, call_with_retry

__all__ = [
    "assemble_document",
    "infer_edges",
    "GenerationBackend",
    "ScriptedBackend",
    "CapabilityError",
    "GenerationError",
    "PipelineCancelled",
    "RepairBudgetExceeded",
    "SynthesisError",
    "CancelToken",
    "GenerationPipeline",
    "GenerationRequest",
    "GenerationResult",
    "PipelineState",
    "generate_workflow",
    "BranchHint",
    "InputRef",
    "NodePlan",
    "WorkflowPlan",
    "extract_json",
    "parse_node",
    "parse_plan",
    "BackoffConfig",
    "RetryPolicy",
    "call_with_retry",
]
