"""Node-type contracts: which variables each node type exposes and which
branch handles it may emit.

The registry is a read-only table built once at import time. Components that
need lookups take a :class:`ContractRegistry` argument and default to
:data:`DEFAULT_REGISTRY`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable

from dslforge.model.graph import SOURCE_HANDLE, NodeType

DEFAULT_OUTPUTS = ("output",)
IF_ELSE_DEFAULT_BRANCH = "false"

ConfigReader = Callable[[Mapping[str, Any]], list[str]]


def _as_name(value: Any) -> str | None:
    """Coerce an id or name to a string; numbers become their text, as handles do."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


def _field_of_items(key: str, item_field: str) -> ConfigReader:
    """Read ``config[key][*][item_field]`` values as strings, skipping malformed items."""

    def read(config: Mapping[str, Any]) -> list[str]:
        items = config.get(key)
        if not isinstance(items, list):
            return []
        names: list[str] = []
        for item in items:
            if isinstance(item, Mapping):
                value = _as_name(item.get(item_field))
                if value is not None:
                    names.append(value)
        return names

    return read


def _code_outputs(config: Mapping[str, Any]) -> list[str]:
    # Exported documents use a mapping of name -> definition, generated ones a list.
    outputs = config.get("outputs")
    if isinstance(outputs, Mapping):
        return [k for k in outputs if isinstance(k, str) and k]
    return _field_of_items("outputs", "variable")(config)


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return True


def _if_else_cases(config: Mapping[str, Any]) -> list[str]:
    cases = _field_of_items("cases", "case_id")(config)
    if not cases:
        cases = _field_of_items("conditions", "id")(config)
    return cases


@dataclass(frozen=True)
class NodeTypeContract:
    """Output and branch contract of one node type.

    Attributes:
        outputs: Statically exposed variable names.
        config_outputs: Reads additional variable names from the node config.
        branches: Reads declared branch ids from the node config; ``None``
            marks a single-output type whose only handle is ``"source"``.
        default_branch: Implicit branch that is always a valid handle but need
            not be wired (the else-branch of an if-else).
        required_config: Config keys the node needs to run. Each entry is a
            group of alternative keys; one of them must hold a non-empty value.
    """

    outputs: tuple[str, ...] = ()
    config_outputs: ConfigReader | None = None
    branches: ConfigReader | None = None
    default_branch: str | None = None
    required_config: tuple[tuple[str, ...], ...] = ()

    @property
    def multi_output(self) -> bool:
        return self.branches is not None

    def outputs_for(self, config: Mapping[str, Any]) -> list[str]:
        names = list(self.outputs)
        if self.config_outputs is not None:
            for name in self.config_outputs(config):
                if name not in names:
                    names.append(name)
        return names

    def declared_branches(self, config: Mapping[str, Any]) -> list[str]:
        if self.branches is None:
            return []
        return self.branches(config)

    def branches_for(self, config: Mapping[str, Any]) -> list[str]:
        if self.branches is None:
            return [SOURCE_HANDLE]
        handles = self.declared_branches(config)
        if self.default_branch and self.default_branch not in handles:
            handles = [*handles, self.default_branch]
        return handles

    def missing_config(self, config: Mapping[str, Any]) -> list[tuple[str, ...]]:
        """Required key groups for which *config* holds no usable value."""
        return [
            group
            for group in self.required_config
            if not any(_has_value(config.get(key)) for key in group)
        ]


BUILTIN_CONTRACTS: dict[NodeType, NodeTypeContract] = {
    NodeType.START: NodeTypeContract(config_outputs=_field_of_items("variables", "variable")),
    NodeType.END: NodeTypeContract(required_config=(("outputs",),)),
    NodeType.ANSWER: NodeTypeContract(required_config=(("answer",),)),
    NodeType.LLM: NodeTypeContract(
        outputs=("text",),
        required_config=(("prompt", "prompt_template"),),
    ),
    NodeType.KNOWLEDGE_RETRIEVAL: NodeTypeContract(outputs=("result",)),
    NodeType.QUESTION_CLASSIFIER: NodeTypeContract(
        outputs=("class_name",),
        branches=_field_of_items("classes", "id"),
        required_config=(("query_variable_selector",),),
    ),
    NodeType.IF_ELSE: NodeTypeContract(
        branches=_if_else_cases,
        default_branch=IF_ELSE_DEFAULT_BRANCH,
    ),
    NodeType.CODE: NodeTypeContract(
        config_outputs=_code_outputs,
        required_config=(("code",),),
    ),
    NodeType.TEMPLATE_TRANSFORM: NodeTypeContract(outputs=("output",)),
    NodeType.VARIABLE_AGGREGATOR: NodeTypeContract(outputs=("output",)),
    NodeType.VARIABLE_ASSIGNER: NodeTypeContract(outputs=("output",)),
    NodeType.ITERATION: NodeTypeContract(
        outputs=("output",),
        required_config=(("iterator_selector",),),
    ),
    NodeType.LOOP: NodeTypeContract(outputs=("output",)),
    NodeType.PARAMETER_EXTRACTOR: NodeTypeContract(
        config_outputs=_field_of_items("parameters", "name"),
        required_config=(("parameters",),),
    ),
    NodeType.HTTP_REQUEST: NodeTypeContract(
        outputs=("body", "status_code", "headers"),
        required_config=(("url",),),
    ),
    NodeType.TOOL: NodeTypeContract(outputs=("text", "files", "json")),
    NodeType.AGENT: NodeTypeContract(outputs=("text",)),
    NodeType.DOCUMENT_EXTRACTOR: NodeTypeContract(outputs=("text",)),
    NodeType.LIST_OPERATOR: NodeTypeContract(outputs=("result", "first_record", "last_record")),
}

_FALLBACK_CONTRACT = NodeTypeContract(outputs=DEFAULT_OUTPUTS)


class ContractRegistry:
    """Read-only lookup of node-type contracts keyed by type string."""

    def __init__(self, contracts: Mapping[NodeType, NodeTypeContract]) -> None:
        self._contracts = MappingProxyType(dict(contracts))

    def is_known(self, node_type: str) -> bool:
        kind = NodeType.lookup(node_type)
        return kind is not None and kind in self._contracts

    def contract_for(self, node_type: str) -> NodeTypeContract:
        """Return the contract for *node_type*; unknown types expose ``output``."""
        kind = NodeType.lookup(node_type)
        if kind is None:
            return _FALLBACK_CONTRACT
        return self._contracts.get(kind, _FALLBACK_CONTRACT)

    def outputs_of(self, node_type: str, config: Mapping[str, Any] | None = None) -> list[str]:
        return self.contract_for(node_type).outputs_for(config or {})

    def branches_of(self, node_type: str, config: Mapping[str, Any] | None = None) -> list[str]:
        return self.contract_for(node_type).branches_for(config or {})

    def missing_config(
        self, node_type: str, config: Mapping[str, Any] | None = None
    ) -> list[tuple[str, ...]]:
        return self.contract_for(node_type).missing_config(config or {})

    def is_multi_output(self, node_type: str) -> bool:
        return self.contract_for(node_type).multi_output

    def known_types(self) -> list[str]:
        return [kind.value for kind in self._contracts]


DEFAULT_REGISTRY = ContractRegistry(BUILTIN_CONTRACTS)


def outputs_of(node_type: str, config: Mapping[str, Any] | None = None) -> list[str]:
    """Variable names a node of *node_type* exposes, per the default registry."""
    return DEFAULT_REGISTRY.outputs_of(node_type, config)


def branches_of(node_type: str, config: Mapping[str, Any] | None = None) -> list[str]:
    """Valid source handles for a node of *node_type*, per the default registry."""
    return DEFAULT_REGISTRY.branches_of(node_type, config)
