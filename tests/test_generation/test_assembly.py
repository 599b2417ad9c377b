"""Tests for edge inference and document assembly."""

from dslforge.generation.assembly import assemble_document, infer_edges
from dslforge.generation.plan import BranchHint, InputRef, NodePlan, WorkflowPlan
from dslforge.model.graph import Node
from dslforge.validation import validate


def _node(node_id: str, node_type: str = "llm", **config) -> Node:
    return Node(id=node_id, type=node_type, config=config)


def _classifier(node_id: str = "cls") -> Node:
    return _node(
        node_id,
        "question-classifier",
        query_variable_selector=["start", "query"],
        classes=[{"id": "c1", "name": "billing"}, {"id": "c2", "name": "tech"}],
    )


def _links(edges):
    return [(e.source, e.source_handle, e.target) for e in edges]


class TestInferEdges:
    def test_linear_adjacency(self):
        nodes = [_node("start", "start"), _node("a"), _node("b")]
        assert _links(infer_edges(nodes)) == [
            ("start", "source", "a"),
            ("a", "source", "b"),
        ]

    def test_entry_gets_no_incoming_edge(self):
        nodes = [_node("a"), _node("start", "start"), _node("b")]
        edges = infer_edges(nodes)
        assert all(e.target != "start" for e in edges)

    def test_data_dependency_overrides_adjacency(self):
        nodes = [
            _node("start", "start"),
            _node("a"),
            _node("b"),
            _node("c", prompt="{{#a.text#}}"),
        ]
        assert ("a", "source", "c") in _links(infer_edges(nodes))

    def test_latest_referenced_node_wins(self):
        nodes = [
            _node("start", "start"),
            _node("a"),
            _node("b"),
            _node("c", prompt="{{#a.text#}} {{#b.text#}} {{#start.query#}}"),
        ]
        assert _links(infer_edges(nodes))[-1] == ("b", "source", "c")

    def test_planned_inputs_count_as_references(self):
        nodes = [_node("start", "start"), _node("a"), _node("b"), _node("c")]
        plans = [NodePlan(id="c", type="llm", inputs=(InputRef(source="a", variable="text"),))]
        assert _links(infer_edges(nodes, plans))[-1] == ("a", "source", "c")

    def test_end_candidate_falls_back_to_entry(self):
        nodes = [_node("start", "start"), _node("end", "end"), _node("x")]
        assert _links(infer_edges(nodes))[-1] == ("start", "source", "x")

    def test_no_candidate_and_no_entry_skips(self):
        nodes = [_node("a"), _node("b")]
        assert _links(infer_edges(nodes)) == [("a", "source", "b")]

    def test_branch_hint_wins(self):
        nodes = [_node("start", "start"), _classifier(), _node("a"), _node("b")]
        plans = [
            NodePlan(id="a", type="llm", branch=BranchHint(source="cls", handle="c2")),
            NodePlan(id="b", type="llm", branch=BranchHint(source="cls", handle="c1")),
        ]
        links = _links(infer_edges(nodes, plans))
        assert ("cls", "c2", "a") in links
        assert ("cls", "c1", "b") in links

    def test_hint_to_later_node_ignored(self):
        nodes = [_node("start", "start"), _node("a"), _node("b")]
        plans = [NodePlan(id="a", type="llm", branch=BranchHint(source="b", handle="source"))]
        assert _links(infer_edges(nodes, plans))[0] == ("start", "source", "a")

    def test_multi_output_source_uses_first_unwired_branch(self):
        nodes = [
            _node("start", "start"),
            _classifier(),
            _node("a", prompt="{{#cls.class_name#}}"),
            _node("b", prompt="{{#cls.class_name#}}"),
        ]
        links = _links(infer_edges(nodes))
        assert ("cls", "c1", "a") in links
        assert ("cls", "c2", "b") in links

    def test_if_else_default_branch_after_cases(self):
        cond = _node("cond", "if-else", cases=[{"case_id": "true"}])
        nodes = [_node("start", "start"), cond, _node("yes"), _node("no")]
        plans = [
            NodePlan(id="yes", type="llm", branch=BranchHint(source="cond", handle="true")),
            NodePlan(id="no", type="llm", inputs=(InputRef(source="cond", variable="result"),)),
        ]
        links = _links(infer_edges(nodes, plans))
        assert ("cond", "true", "yes") in links
        assert ("cond", "false", "no") in links

    def test_edge_ids(self):
        nodes = [_node("start", "start"), _classifier(), _node("a", prompt="{{#cls.class_name#}}")]
        ids = [e.id for e in infer_edges(nodes)]
        assert ids == ["start-source-cls", "cls-c1-a"]


class TestAssembleDocument:
    def test_assembled_document_validates(self):
        nodes = [
            _node("start", "start", variables=[{"variable": "query"}]),
            _node("llm", prompt="{{#start.query#}}"),
            _node("end", "end", outputs=[{"value_selector": ["llm", "text"]}]),
        ]
        plan = WorkflowPlan(name="qa", nodes=())
        doc = assemble_document(plan, nodes, infer_edges(nodes), version="0.2.0")
        assert doc.name == "qa"
        assert doc.mode == "workflow"
        assert doc.version == "0.2.0"
        assert validate(doc).valid
