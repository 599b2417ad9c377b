"""JSON API: health, node types, document validation and analysis."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from dslforge import __version__
from dslforge.config import DslforgeConfig
from dslforge.parser import ParseError, document_from_dict, parse_document
from dslforge.validation import WorkflowValidator

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.after_request
def add_cors_headers(response):
    """Allow cross-origin requests to the API."""
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    return response


@api_bp.route("/validate", methods=["OPTIONS"])
@api_bp.route("/analyze", methods=["OPTIONS"])
def preflight():
    """Handle CORS preflight for document submission."""
    return "", 204


def _document_from_request():
    """Decode the submitted document: a JSON body, or YAML text."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise ParseError("Request body is not valid JSON")
        return document_from_dict(data)
    text = request.get_data(as_text=True)
    if not text.strip():
        raise ParseError("Request body is empty")
    return parse_document(text)


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "version": __version__})


@api_bp.route("/node-types")
def node_types():
    """List node types with their static outputs and branching behaviour."""
    registry = current_app.extensions["registry"]
    types = []
    for node_type in registry.known_types():
        contract = registry.contract_for(node_type)
        types.append({
            "type": node_type,
            "outputs": list(contract.outputs),
            "configOutputs": contract.config_outputs is not None,
            "multiOutput": contract.multi_output,
            "defaultBranch": contract.default_branch,
        })
    return jsonify({"nodeTypes": types})


@api_bp.route("/validate", methods=["POST"])
def validate_document():
    """Validate a document; ``?orphans_as_errors=1`` tightens the orphan policy."""
    try:
        document = _document_from_request()
    except ParseError as exc:
        return jsonify({"error": str(exc)}), 400

    validator = current_app.extensions["validator"]
    if request.args.get("orphans_as_errors") in ("1", "true"):
        config = DslforgeConfig(orphans_as_errors=True)
        validator = WorkflowValidator(
            current_app.extensions["registry"], config.validation_policy()
        )
    report = validator.validate(document)
    logger.info("Validated document '%s': %s", document.name, report.summary())
    return jsonify(report.to_dict())


@api_bp.route("/analyze", methods=["POST"])
def analyze_document():
    """Return dependency and variable analysis for a document."""
    try:
        document = _document_from_request()
    except ParseError as exc:
        return jsonify({"error": str(exc)}), 400

    result = current_app.extensions["analyzer"].analyze(document)
    return jsonify(result.to_dict())
