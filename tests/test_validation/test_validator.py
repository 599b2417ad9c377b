"""Tests for the validator, its report and validate_or_raise."""

import pytest

from dslforge.model.diagnostic import Diagnostic, Severity
from dslforge.model.graph import Document, Edge, Node
from dslforge.parser import parse_document
from dslforge.validation import (
    STRICT_POLICY,
    ValidationError,
    WorkflowValidator,
    validate,
    validate_or_raise,
)


RAG_YAML = """
mode: workflow
nodes:
  - id: start
    type: start
    config:
      variables:
        - variable: query
  - id: retrieve
    type: knowledge-retrieval
    config:
      query_variable_selector: [start, query]
  - id: classify
    type: question-classifier
    config:
      query_variable_selector: [start, query]
      classes:
        - {id: billing, name: Billing}
        - {id: tech, name: Technical}
  - id: billing_llm
    type: llm
    config:
      prompt: "Billing question {{#start.query#}} with {{#retrieve.result#}}"
  - id: tech_llm
    type: llm
    config:
      prompt: "Tech question {{#start.query#}} with {{#retrieve.result#}} ({{#classify.class_name#}})"
  - id: merge
    type: variable-aggregator
    config:
      variables:
        - [billing_llm, text]
        - [tech_llm, text]
  - id: end
    type: end
    config:
      outputs:
        - variable: answer
          value_selector: [merge, output]
edges:
  - {source: start, target: retrieve}
  - {source: retrieve, target: classify}
  - {source: classify, sourceHandle: billing, target: billing_llm}
  - {source: classify, sourceHandle: tech, target: tech_llm}
  - {source: billing_llm, target: merge}
  - {source: tech_llm, target: merge}
  - {source: merge, target: end}
"""


def _minimal_doc(**overrides) -> Document:
    defaults = dict(
        nodes=[
            Node(id="start", type="start", config={"variables": [{"variable": "q"}]}),
            Node(id="llm", type="llm", config={"prompt": "{{#start.q#}}"}),
            Node(id="end", type="end", config={"outputs": [{"value_selector": ["llm", "text"]}]}),
        ],
        edges=[Edge(source="start", target="llm"), Edge(source="llm", target="end")],
    )
    defaults.update(overrides)
    return Document(**defaults)


class TestValidate:
    def test_minimal_document_is_valid(self):
        report = validate(_minimal_doc())
        assert report.valid
        assert report.diagnostics == ()
        assert report.to_dict() == {"valid": True, "errors": [], "warnings": []}

    def test_branching_rag_workflow_is_valid(self):
        report = validate(parse_document(RAG_YAML))
        assert report.valid, report.feedback_lines()
        assert report.warnings == []

    def test_missing_entry_is_invalid(self):
        doc = _minimal_doc(
            nodes=[
                Node(id="llm", type="llm"),
                Node(id="end", type="end", config={"outputs": [{"value_selector": ["llm", "text"]}]}),
            ],
            edges=[Edge(source="llm", target="end")],
        )
        report = validate(doc)
        assert not report.valid
        assert "MISSING_START_NODE" in report.codes()

    def test_multiple_entries_one_error(self):
        doc = _minimal_doc()
        doc = Document(
            nodes=[*doc.nodes, Node(id="start2", type="start")],
            edges=[*doc.edges, Edge(source="start2", target="llm")],
        )
        report = validate(doc)
        assert report.codes().count("MULTIPLE_START_NODES") == 1

    def test_dangling_edge_is_error_naming_edge(self):
        doc = _minimal_doc()
        doc = Document(nodes=doc.nodes, edges=[*doc.edges, Edge(source="llm", target="ghost", id="bad")])
        report = validate(doc)
        assert not report.valid
        assert [d.edge_id for d in report.errors] == ["bad"]

    def test_branch_mismatch_is_error(self):
        text = RAG_YAML.replace("sourceHandle: tech", "sourceHandle: sales")
        report = validate(parse_document(text))
        codes = [d.code for d in report.errors]
        assert "BRANCH_WITHOUT_EDGE" in codes
        assert "UNKNOWN_BRANCH_HANDLE" in codes

    def test_detached_chain_is_reported_unreachable(self):
        doc = _minimal_doc(
            nodes=[
                *_minimal_doc().nodes,
                Node(id="x", type="llm", config={"prompt": "{{#start.q#}}"}),
                Node(id="y", type="end", config={"outputs": [{"value_selector": ["x", "text"]}]}),
            ],
            edges=[*_minimal_doc().edges, Edge(source="x", target="y")],
        )
        report = validate(doc)
        assert report.valid
        unreachable = [d.node_id for d in report.warnings if d.code == "UNREACHABLE_NODE"]
        assert unreachable == ["x", "y"]

    def test_numeric_class_ids_match_handles(self):
        text = RAG_YAML.replace("{id: billing, name: Billing}", "{id: 1, name: Billing}")
        text = text.replace("{id: tech, name: Technical}", "{id: 2, name: Technical}")
        text = text.replace("sourceHandle: billing", "sourceHandle: 1")
        text = text.replace("sourceHandle: tech", "sourceHandle: 2")
        report = validate(parse_document(text))
        assert report.valid, report.feedback_lines()
        assert report.warnings == []

    def test_missing_required_config_is_warning(self):
        nodes = [*_minimal_doc().nodes[:2], Node(id="end", type="end")]
        report = validate(_minimal_doc(nodes=nodes))
        assert report.valid
        assert "MISSING_REQUIRED_CONFIG" in [d.code for d in report.warnings]

    def test_warnings_do_not_invalidate(self):
        doc = _minimal_doc(nodes=[*_minimal_doc().nodes, Node(id="lonely", type="template-transform")])
        report = validate(doc)
        assert report.valid
        assert {d.code for d in report.warnings} == {"ORPHAN_NODE", "UNUSED_VARIABLE"}

    def test_strict_policy_escalates_orphans(self):
        doc = _minimal_doc(nodes=[*_minimal_doc().nodes, Node(id="lonely", type="template-transform")])
        report = validate(doc, policy=STRICT_POLICY)
        assert not report.valid
        assert [d.code for d in report.errors] == ["ORPHAN_NODE"]

    def test_extra_rules(self):
        def no_llm(ctx):
            return [
                Diagnostic(code="NO_LLM", severity=Severity.ERROR, message="llm banned", node_id=n.id)
                for n in ctx.document.nodes
                if n.type == "llm"
            ]

        report = validate(_minimal_doc(), extra_rules=[no_llm])
        assert report.codes() == ["NO_LLM"]

    def test_report_serialization(self):
        doc = _minimal_doc()
        doc = Document(nodes=doc.nodes, edges=[*doc.edges, Edge(source="llm", target="ghost", id="bad")])
        data = validate(doc).to_dict()
        assert data["valid"] is False
        assert data["errors"] == [
            {
                "path": "workflow.graph.edges[bad]",
                "message": "Edge 'bad' references non-existent target node 'ghost'.",
                "severity": "error",
                "code": "INVALID_EDGE_TARGET",
            }
        ]

    def test_feedback_lines_errors_then_warnings(self):
        doc = _minimal_doc()
        doc = Document(
            nodes=[*doc.nodes, Node(id="lonely", type="template-transform")],
            edges=[*doc.edges, Edge(source="llm", target="ghost", id="bad")],
        )
        lines = validate(doc).feedback_lines()
        assert lines[0].startswith("ERROR [edge=bad] INVALID_EDGE_TARGET")
        assert all(line.startswith("WARNING") for line in lines[1:])

    def test_validation_is_deterministic(self):
        doc = parse_document(RAG_YAML)
        assert validate(doc) == validate(doc)

    def test_validator_exposes_analysis(self):
        report = WorkflowValidator().validate(_minimal_doc())
        assert report.analysis.dependencies.topological_order == ("start", "llm", "end")


class TestValidateOrRaise:
    def test_raises_on_errors(self):
        doc = _minimal_doc(nodes=[Node(id="llm", type="llm")], edges=[])
        with pytest.raises(ValidationError) as exc_info:
            validate_or_raise(doc)
        assert all(d.is_error for d in exc_info.value.diagnostics)
        assert "MISSING_START_NODE" in str(exc_info.value)

    def test_returns_report_when_valid(self):
        report = validate_or_raise(_minimal_doc())
        assert report.valid
