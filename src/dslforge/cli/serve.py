"""CLI command: dslforge serve -- run the JSON API."""

from __future__ import annotations

import click


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=5000, type=int, help="Port to bind to")
@click.option("--debug/--no-debug", default=False, help="Enable debug mode")
def serve(host: str, port: int, debug: bool) -> None:
    """Start the validation API server."""
    from dslforge.config import DslforgeConfig
    from dslforge.web.app import create_app

    config = DslforgeConfig(host=host, port=port)
    app = create_app(config=config)
    click.echo(f"Starting dslforge API on {config.host}:{config.port}")
    app.run(host=config.host, port=config.port, debug=debug)
