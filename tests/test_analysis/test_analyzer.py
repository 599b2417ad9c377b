"""Tests for the combined analysis facade."""

from dslforge.analysis import WorkflowAnalyzer, analyze
from dslforge.model.diagnostic import Severity
from dslforge.model.graph import Document, Edge, Node


def _document(extra_nodes=(), extra_edges=()) -> Document:
    nodes = [
        Node(id="start", type="start", config={"variables": [{"variable": "query"}]}),
        Node(id="llm", type="llm", config={"prompt": "{{#start.query#}}"}),
        Node(id="end", type="end", config={"outputs": [{"value_selector": ["llm", "text"]}]}),
        *extra_nodes,
    ]
    edges = [
        Edge(source="start", target="llm"),
        Edge(source="llm", target="end"),
        *extra_edges,
    ]
    return Document(nodes=nodes, edges=edges)


class TestAnalyze:
    def test_clean_document_has_no_issues(self):
        result = analyze(_document())
        assert result.issues == ()
        assert result.errors == []
        assert result.dependencies.topological_order == ("start", "llm", "end")

    def test_issue_codes_and_severities(self):
        doc = _document(
            extra_nodes=[
                Node(id="a", type="llm", config={"prompt": "{{#ghost.text#}}"}),
                Node(id="b", type="llm", config={"prompt": "{{#a.text#}}"}),
                Node(id="lonely", type="template-transform"),
            ],
            extra_edges=[Edge(source="a", target="b"), Edge(source="b", target="a")],
        )
        result = analyze(doc)
        by_code = {issue.code: issue for issue in result.issues}
        assert by_code["CIRCULAR_DEPENDENCY"].severity is Severity.ERROR
        assert by_code["CIRCULAR_DEPENDENCY"].details == {"cycle": ["a", "b"]}
        assert by_code["ORPHAN_NODE"].node_id == "lonely"
        assert by_code["ORPHAN_NODE"].severity is Severity.WARNING
        assert by_code["UNDEFINED_VARIABLE"].node_id == "a"
        assert by_code["UNUSED_VARIABLE"].severity is Severity.WARNING

    def test_to_dict_shape(self):
        data = analyze(_document()).to_dict()
        assert set(data) == {"dependencies", "variables", "issues"}
        assert data["dependencies"]["topologicalOrder"] == ["start", "llm", "end"]

    def test_issue_to_dict(self):
        doc = _document(extra_nodes=[Node(id="lonely", type="llm")])
        issues = [i.to_dict() for i in analyze(doc).issues if i.code == "ORPHAN_NODE"]
        assert issues == [
            {
                "type": "warning",
                "code": "ORPHAN_NODE",
                "message": "Node 'lonely' is not connected to the workflow",
                "nodeId": "lonely",
            }
        ]

    def test_analyzer_is_reusable_and_deterministic(self):
        analyzer = WorkflowAnalyzer()
        doc = _document(extra_nodes=[Node(id="lonely", type="llm")])
        assert analyzer.analyze(doc).to_dict() == analyzer.analyze(doc).to_dict()
