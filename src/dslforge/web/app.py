"""Flask application factory for the validation API."""

from __future__ import annotations

from flask import Flask

from dslforge.analysis import WorkflowAnalyzer
from dslforge.config import DslforgeConfig
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.validation import WorkflowValidator


def create_app(
    config: DslforgeConfig | None = None,
    registry: ContractRegistry | None = None,
    flask_config: dict | None = None,
) -> Flask:
    """Create and configure the Flask app."""
    app = Flask(__name__)
    app.config.update(flask_config or {})

    config = config or DslforgeConfig()
    registry = registry or DEFAULT_REGISTRY

    # Shared, stateless services for the routes
    app.extensions["dslforge_config"] = config
    app.extensions["registry"] = registry
    app.extensions["analyzer"] = WorkflowAnalyzer(registry)
    app.extensions["validator"] = WorkflowValidator(registry, config.validation_policy())

    from dslforge.web.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    return app
