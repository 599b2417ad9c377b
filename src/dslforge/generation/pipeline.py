"""Generation pipeline: plan, synthesize nodes, wire, validate, repair.

The run is an explicit state machine::

    IDLE -> SYNTHESIZING -> VALIDATING -> (REPAIRING -> VALIDATING)* -> DONE | FAILED

A document is only ever returned after it validated without errors. Backend
failures are retried under a separate capability retry policy and never count
against the repair budget.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from dslforge.config import DslforgeConfig
from dslforge.events import (
    CapabilityRetrying,
    EventBus,
    NodeSynthesized,
    PipelineCompleted,
    PipelineFailed,
    PipelineStarted,
    PlanCreated,
    RepairRequested,
    StateChanged,
    ValidationCompleted,
)
from dslforge.generation.assembly import assemble_document, infer_edges
from dslforge.generation.backend import GenerationBackend
from dslforge.generation.errors import (
    CapabilityError,
    PipelineCancelled,
    RepairBudgetExceeded,
    SynthesisError,
)
from dslforge.generation.plan import NodePlan, WorkflowPlan, parse_node, parse_plan, strip_fences
from dslforge.generation.prompts import (
    NODE_SYSTEM,
    PLAN_SYSTEM,
    REPAIR_SYSTEM,
    build_node_prompt,
    build_plan_prompt,
    build_repair_prompt,
    with_parse_error,
)
from dslforge.generation.retry import RetryPolicy, build_retry_policy, call_with_retry
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.graph import Document, Node
from dslforge.parser import ParseError, dump_document, parse_document
from dslforge.validation import ValidationPolicy, ValidationReport, WorkflowValidator

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    SYNTHESIZING = "synthesizing"
    VALIDATING = "validating"
    REPAIRING = "repairing"
    DONE = "done"
    FAILED = "failed"


class CancelToken:
    """Cooperative cancellation flag, checked at every step boundary."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled("Generation cancelled")


@dataclass(frozen=True)
class GenerationRequest:
    description: str
    mode: str = ""


@dataclass(frozen=True)
class GenerationResult:
    document: Document
    report: ValidationReport
    plan: WorkflowPlan
    repairs_used: int

    def to_yaml(self) -> str:
        return dump_document(self.document)


class GenerationPipeline:
    """Drives one backend through planning, synthesis and repair.

    Example:
        >>> pipeline = GenerationPipeline(backend)
        >>> result = pipeline.run("Answer questions from a knowledge base")
        >>> result.report.valid
        True
    """

    def __init__(
        self,
        backend: GenerationBackend,
        config: DslforgeConfig | None = None,
        *,
        registry: ContractRegistry | None = None,
        policy: ValidationPolicy | None = None,
        event_bus: EventBus | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or DslforgeConfig()
        self.registry = registry or DEFAULT_REGISTRY
        self.validator = WorkflowValidator(
            self.registry, policy or self.config.validation_policy()
        )
        self.event_bus = event_bus or EventBus()
        self.retry_policy = retry_policy or build_retry_policy(self.config.capability_attempts)
        self.cancel_token = cancel_token or CancelToken()
        self._sleep = sleep
        self.state = PipelineState.IDLE
        self.repairs_used = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, request: GenerationRequest | str) -> GenerationResult:
        if isinstance(request, str):
            request = GenerationRequest(description=request)
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline already used (state={self.state.value})")

        self.event_bus.emit(PipelineStarted(description=request.description))
        try:
            self._transition(PipelineState.SYNTHESIZING)
            plan = self._synthesize_plan(request)
            nodes = self._synthesize_nodes(plan)
            edges = infer_edges(nodes, plan.nodes, self.registry)
            document = assemble_document(plan, nodes, edges, version=self.config.dsl_version)
            return self._validate_and_repair(plan, document)
        except Exception as exc:
            self._transition(PipelineState.FAILED)
            logger.error("Generation failed after %d repair(s): %s", self.repairs_used, exc)
            self.event_bus.emit(PipelineFailed(error=str(exc), repairs_used=self.repairs_used))
            raise

    def cancel(self) -> None:
        self.cancel_token.cancel()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _synthesize_plan(self, request: GenerationRequest) -> WorkflowPlan:
        prompt = build_plan_prompt(request.description, self.registry.known_types(), request.mode)
        plan, _ = self._request_parsed(prompt, PLAN_SYSTEM, parse_plan, stage="plan")
        if request.mode and plan.mode != request.mode:
            plan = WorkflowPlan(
                name=plan.name,
                nodes=plan.nodes,
                description=plan.description,
                mode=request.mode,
                complexity=plan.complexity,
            )
        logger.info("Plan '%s' created with %d node(s)", plan.name, len(plan.nodes))
        self.event_bus.emit(PlanCreated(name=plan.name, node_count=len(plan.nodes)))
        return plan

    def _synthesize_nodes(self, plan: WorkflowPlan) -> list[Node]:
        nodes: list[Node] = []
        for node_plan in plan.nodes:
            node, attempts = self._synthesize_node(node_plan, nodes)
            nodes.append(node)
            self.event_bus.emit(
                NodeSynthesized(node_id=node.id, node_type=node.type, attempts=attempts)
            )
        return nodes

    def _synthesize_node(self, plan: NodePlan, existing: list[Node]) -> tuple[Node, int]:
        prompt = build_node_prompt(plan, existing, self.registry)
        return self._request_parsed(
            prompt,
            NODE_SYSTEM,
            lambda text: parse_node(text, plan),
            stage=f"node '{plan.id}'",
        )

    def _request_parsed(self, prompt, system, parse, *, stage):
        """Call the backend until *parse* accepts the response.

        Returns the parsed value and the number of attempts used.
        """
        attempts = max(1, self.config.node_attempts)
        current = prompt
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            response = self._call(current, system)
            try:
                return parse(response), attempt
            except (ParseError, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "Unparsable %s response (attempt %d/%d): %s", stage, attempt, attempts, exc
                )
                current = with_parse_error(prompt, exc)
        raise SynthesisError(
            f"Could not parse {stage} response after {attempts} attempt(s): {last_error}",
            stage=stage,
            attempts=attempts,
            cause=last_error,
        )

    def _validate_and_repair(self, plan: WorkflowPlan, document: Document) -> GenerationResult:
        while True:
            self.cancel_token.raise_if_cancelled()
            self._transition(PipelineState.VALIDATING)
            report = self.validator.validate(document)
            self.event_bus.emit(
                ValidationCompleted(
                    valid=report.valid,
                    error_count=len(report.errors),
                    warning_count=len(report.warnings),
                )
            )
            if report.valid:
                self._transition(PipelineState.DONE)
                logger.info("Generated '%s' after %d repair(s)", plan.name, self.repairs_used)
                self.event_bus.emit(
                    PipelineCompleted(name=plan.name, repairs_used=self.repairs_used)
                )
                return GenerationResult(
                    document=document,
                    report=report,
                    plan=plan,
                    repairs_used=self.repairs_used,
                )
            if self.repairs_used >= self.config.max_repair_attempts:
                raise RepairBudgetExceeded(report, self.repairs_used)

            self._transition(PipelineState.REPAIRING)
            self.repairs_used += 1
            feedback = report.feedback_lines()
            self.event_bus.emit(RepairRequested(attempt=self.repairs_used, feedback=tuple(feedback)))
            document = self._repair(document, feedback)

    def _repair(self, document: Document, feedback: list[str]) -> Document:
        prompt = build_repair_prompt(dump_document(document), feedback)
        response = self._call(prompt, REPAIR_SYSTEM)
        try:
            return parse_document(strip_fences(response))
        except (ParseError, ValueError) as exc:
            # The attempt is spent; the previous document is validated again.
            logger.warning("Unparsable repair response (repair %d): %s", self.repairs_used, exc)
            return document

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _call(self, prompt: str, system: str) -> str:
        self.cancel_token.raise_if_cancelled()

        def on_retry(attempt: int, delay: float, exc: CapabilityError) -> None:
            self.event_bus.emit(CapabilityRetrying(attempt=attempt, delay=delay, error=str(exc)))
            self.cancel_token.raise_if_cancelled()

        return call_with_retry(
            lambda: self.backend.generate(prompt, system=system),
            self.retry_policy,
            sleep=self._sleep,
            on_retry=on_retry,
        )

    def _transition(self, state: PipelineState) -> None:
        if state is self.state:
            return
        previous = self.state
        self.state = state
        logger.debug("Pipeline state %s -> %s", previous.value, state.value)
        self.event_bus.emit(StateChanged(previous=previous.value, current=state.value))


def generate_workflow(
    backend: GenerationBackend,
    description: str,
    config: DslforgeConfig | None = None,
    **kwargs,
) -> GenerationResult:
    """Run a fresh :class:`GenerationPipeline` for *description*."""
    return GenerationPipeline(backend, config, **kwargs).run(description)
