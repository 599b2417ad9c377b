"""Tests for reference extraction and the variable resolver."""

from dslforge.analysis import VariableResolver, extract_references, format_reference
from dslforge.analysis.references import REFERENCE_PATTERN, iter_strings
from dslforge.model.graph import Node


def _start(*variables: str) -> Node:
    return Node(
        id="start",
        type="start",
        config={"variables": [{"variable": v, "type": "text-input"} for v in variables]},
    )


def _resolve(nodes):
    return VariableResolver().analyze_variables(nodes)


class TestReferencePattern:
    def test_round_trip(self):
        token = format_reference("llm_1", "text")
        assert token == "{{#llm_1.text#}}"
        match = REFERENCE_PATTERN.fullmatch(token)
        assert match.groups() == ("llm_1", "text")

    def test_malformed_tokens_do_not_match(self):
        for text in ("{{#llm.text}}", "{{llm.text#}}", "{{#llm#}}", "{#llm.text#}", "{{# llm.text#}}"):
            assert REFERENCE_PATTERN.search(text) is None, text

    def test_dotted_variable_path(self):
        match = REFERENCE_PATTERN.search("{{#code.result.items#}}")
        assert match.groups() == ("code", "result.items")


class TestIterStrings:
    def test_walks_nested_structures(self):
        config = {"a": "x", "b": [1, True, None, {"c": "y"}], "d": 3.5}
        assert list(iter_strings(config)) == [("a", "x"), ("b[3].c", "y")]


class TestExtractReferences:
    def test_tokens_in_nested_config(self):
        node = Node(
            id="llm",
            type="llm",
            config={
                "prompt_template": [
                    {"role": "system", "text": "You are helpful"},
                    {"role": "user", "text": "{{#start.query#}} in {{#start.lang#}}"},
                ]
            },
        )
        refs = extract_references(node)
        assert [(r.node_id, r.variable) for r in refs] == [("start", "query"), ("start", "lang")]
        assert refs[0].owner_id == "llm"
        assert refs[0].path == "prompt_template[1].text"
        assert refs[0].token == "{{#start.query#}}"

    def test_repeated_token_reported_per_occurrence(self):
        node = Node(id="t", type="template-transform", config={"template": "{{#a.x#}} {{#a.x#}}"})
        assert len(extract_references(node)) == 2

    def test_selector_fields(self):
        node = Node(
            id="kr",
            type="knowledge-retrieval",
            config={"query_variable_selector": ["start", "query"]},
        )
        refs = extract_references(node)
        assert [(r.node_id, r.variable) for r in refs] == [("start", "query")]
        assert refs[0].token == "{{#start.query#}}"
        assert refs[0].path == "query_variable_selector"

    def test_selector_deduplicated_against_tokens(self):
        node = Node(
            id="end",
            type="end",
            config={
                "summary": "{{#llm.text#}}",
                "outputs": [{"variable": "answer", "value_selector": ["llm", "text"]}],
            },
        )
        assert len(extract_references(node)) == 1

    def test_aggregator_variable_lists(self):
        node = Node(
            id="agg",
            type="variable-aggregator",
            config={"variables": [["a", "text"], ["b", "text"]]},
        )
        refs = extract_references(node)
        assert [(r.node_id, r.variable) for r in refs] == [("a", "text"), ("b", "text")]

    def test_non_string_leaves_ignored(self):
        node = Node(id="c", type="code", config={"timeout": 30, "enabled": True, "extra": None})
        assert extract_references(node) == []


class TestVariableResolver:
    def test_defined_variables(self):
        nodes = [_start("query"), Node(id="llm", type="llm")]
        analysis = _resolve(nodes)
        assert [(d.node_id, d.variable) for d in analysis.defined] == [
            ("start", "query"),
            ("llm", "text"),
        ]

    def test_undefined_variable_on_existing_node(self):
        nodes = [_start("query"), Node(id="llm", type="llm", config={"prompt": "{{#start.question#}}"})]
        analysis = _resolve(nodes)
        assert [r.token for r in analysis.undefined] == ["{{#start.question#}}"]

    def test_reference_to_unknown_node_is_undefined(self):
        nodes = [_start(), Node(id="llm", type="llm", config={"prompt": "{{#ghost.text#}}"})]
        analysis = _resolve(nodes)
        assert [r.node_id for r in analysis.undefined] == ["ghost"]

    def test_unused_variables(self):
        nodes = [
            _start("query", "unused_input"),
            Node(id="llm", type="llm", config={"prompt": "{{#start.query#}}"}),
        ]
        analysis = _resolve(nodes)
        assert [d.key for d in analysis.unused] == ["start.unused_input", "llm.text"]

    def test_system_variables(self):
        nodes = [
            _start(),
            Node(id="llm", type="llm", config={"prompt": "{{#sys.query#}} {{#sys.bogus#}}"}),
        ]
        analysis = _resolve(nodes)
        assert [r.token for r in analysis.undefined] == ["{{#sys.bogus#}}"]

    def test_external_namespaces_skipped(self):
        nodes = [
            _start(),
            Node(
                id="llm",
                type="llm",
                config={"prompt": "{{#env.API_KEY#}} {{#conversation.memory#}}"},
            ),
        ]
        assert _resolve(nodes).undefined == ()

    def test_code_outputs_resolve(self):
        nodes = [
            Node(id="code", type="code", config={"outputs": {"result": {"type": "string"}}}),
            Node(id="end", type="end", config={"outputs": [{"value_selector": ["code", "result"]}]}),
        ]
        analysis = _resolve(nodes)
        assert analysis.undefined == ()
        assert analysis.is_defined("code", "result")
        assert [r.owner_id for r in analysis.references_from("end")] == ["end"]

    def test_to_dict(self):
        nodes = [_start("q"), Node(id="llm", type="llm", config={"prompt": "{{#start.q#}}"})]
        data = _resolve(nodes).to_dict()
        assert data["undefinedReferences"] == []
        assert data["unusedVariables"] == [{"nodeId": "llm", "variable": "text", "type": "llm"}]
        assert data["referencedVariables"][0]["token"] == "{{#start.q#}}"
