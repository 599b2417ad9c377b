"""Extraction of variable references from heterogeneous node config trees."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from typing import Any

from dslforge.analysis.result import VariableReference
from dslforge.model.graph import Node

# {{#node_id.variable#}}; anything not matching this exactly is ignored.
REFERENCE_PATTERN = re.compile(r"\{\{#([^#.{}\s]+)\.([^#{}\s]+)#\}\}")

SELECTOR_KEYS = frozenset({
    "variable_selector",
    "value_selector",
    "query_variable_selector",
    "iterator_selector",
    "output_selector",
})


def format_reference(node_id: str, variable: str) -> str:
    """Return the canonical reference token for *node_id*.*variable*."""
    return f"{{{{#{node_id}.{variable}#}}}}"


def _child_path(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def iter_strings(value: Any, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield ``(path, string)`` for every string leaf of a config tree.

    Numbers, booleans and None are leaves without text; mappings and
    sequences are walked in their natural order.
    """
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, Mapping):
        for key, child in value.items():
            yield from iter_strings(child, _child_path(path, str(key)))
    elif isinstance(value, (list, tuple)):
        for i, child in enumerate(value):
            yield from iter_strings(child, f"{path}[{i}]")


def _as_selector(value: Any) -> tuple[str, str] | None:
    if (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and isinstance(value[0], str)
        and isinstance(value[1], str)
        and value[0]
        and value[1]
    ):
        return value[0], value[1]
    return None


def iter_selectors(value: Any, path: str = "") -> Iterator[tuple[str, tuple[str, str]]]:
    """Yield ``(path, (node_id, variable))`` for explicit selector fields."""
    if isinstance(value, Mapping):
        for key, child in value.items():
            child_path = _child_path(path, str(key))
            if key in SELECTOR_KEYS:
                selector = _as_selector(child)
                if selector is not None:
                    yield child_path, selector
                    continue
            if key == "variables" and isinstance(child, list):
                # Aggregators list bare selectors: variables: [[node, var], ...]
                for i, item in enumerate(child):
                    selector = _as_selector(item)
                    if selector is not None and isinstance(item, list):
                        yield f"{child_path}[{i}]", selector
            yield from iter_selectors(child, child_path)
    elif isinstance(value, (list, tuple)):
        for i, child in enumerate(value):
            yield from iter_selectors(child, f"{path}[{i}]")


def extract_references(node: Node) -> list[VariableReference]:
    """Return every variable reference found in *node*'s config.

    Token matches are reported once per occurrence. Selector fields add a
    reference only when the same node/variable pair was not already found
    as a token in this node.
    """
    references: list[VariableReference] = []
    for path, text in iter_strings(node.config):
        for match in REFERENCE_PATTERN.finditer(text):
            references.append(
                VariableReference(
                    owner_id=node.id,
                    node_id=match.group(1),
                    variable=match.group(2),
                    token=match.group(0),
                    path=path,
                )
            )

    seen = {(r.node_id, r.variable) for r in references}
    for path, (ref_node, variable) in iter_selectors(node.config):
        if (ref_node, variable) in seen:
            continue
        seen.add((ref_node, variable))
        references.append(
            VariableReference(
                owner_id=node.id,
                node_id=ref_node,
                variable=variable,
                token=format_reference(ref_node, variable),
                path=path,
            )
        )
    return references
