"""Tests for the dslforge CLI commands."""
from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from dslforge import __version__
from dslforge.cli.main import cli


VALID_YAML = """
name: qa
nodes:
  - id: start
    type: start
    config:
      variables:
        - variable: query
  - id: llm
    type: llm
    config:
      prompt: "Answer {{#start.query#}}"
  - id: end
    type: end
    config:
      outputs:
        - variable: answer
          value_selector: [llm, text]
edges:
  - {source: start, target: llm}
  - {source: llm, target: end}
"""

ORPHAN_YAML = VALID_YAML.replace(
    "  - id: end\n", "  - id: lonely\n    type: template-transform\n  - id: end\n"
)

CYCLE_YAML = VALID_YAML + "  - {source: end, target: llm}\n"


@pytest.fixture
def write_doc(tmp_path):
    def write(text: str, name: str = "workflow.yml") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)

    return write


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


class TestCLIGroup:
    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("validate", "analyze", "node-types", "serve"):
            assert command in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


# ---------------------------------------------------------------------------
# validate command
# ---------------------------------------------------------------------------


class TestValidateCommand:
    def test_valid_document(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["validate", write_doc(VALID_YAML)])
        assert result.exit_code == 0
        assert "OK: workflow.yml is valid" in result.output

    def test_errors_exit_nonzero(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["validate", write_doc(CYCLE_YAML)])
        assert result.exit_code == 1
        assert "CIRCULAR_DEPENDENCY" in result.output
        assert "Summary:" in result.output

    def test_warnings_only_exit_zero(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["validate", write_doc(ORPHAN_YAML)])
        assert result.exit_code == 0
        assert "ORPHAN_NODE" in result.output
        assert "0 error(s)" in result.output

    def test_orphans_as_errors(self, write_doc) -> None:
        path = write_doc(ORPHAN_YAML)
        result = CliRunner().invoke(cli, ["validate", "--orphans-as-errors", path])
        assert result.exit_code == 1
        assert "ERROR [node=lonely] ORPHAN_NODE" in result.output

    def test_json_output(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["validate", "--json", write_doc(CYCLE_YAML)])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert [e["code"] for e in data["errors"]] == ["END_HAS_OUTGOING", "CIRCULAR_DEPENDENCY"]

    def test_parse_error(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["validate", write_doc("nodes: [unclosed")])
        assert result.exit_code == 1
        assert "Parse error" in result.output

    def test_missing_file(self) -> None:
        result = CliRunner().invoke(cli, ["validate", "/nonexistent/workflow.yml"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# analyze command
# ---------------------------------------------------------------------------


class TestAnalyzeCommand:
    def test_text_output(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["analyze", write_doc(ORPHAN_YAML)])
        assert result.exit_code == 0
        assert "Workflow: qa" in result.output
        assert "Execution order:" in result.output
        assert "1. start" in result.output
        assert "Orphans: lonely" in result.output

    def test_cycles_listed(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["analyze", write_doc(CYCLE_YAML)])
        assert result.exit_code == 0
        assert "llm -> end -> llm" in result.output

    def test_json_output(self, write_doc) -> None:
        result = CliRunner().invoke(cli, ["analyze", "--json", write_doc(VALID_YAML)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["dependencies"]["topologicalOrder"] == ["start", "llm", "end"]


# ---------------------------------------------------------------------------
# node-types and serve commands
# ---------------------------------------------------------------------------


class TestNodeTypesCommand:
    def test_lists_types(self) -> None:
        result = CliRunner().invoke(cli, ["node-types"])
        assert result.exit_code == 0
        assert "question-classifier" in result.output
        assert "branches=<from config>+false" in result.output


class TestServeCommand:
    def test_serve_help_shows_options(self) -> None:
        result = CliRunner().invoke(cli, ["serve", "--help"])
        assert result.exit_code == 0
        assert "--host" in result.output
        assert "--port" in result.output
        assert "--debug" in result.output
