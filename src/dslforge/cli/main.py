"""dslforge CLI entry point: Click group with subcommands."""

import logging

import click

from dslforge import __version__


@click.group()
@click.version_option(version=__version__, prog_name="dslforge")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """dslforge - analyze and validate workflow DSL documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Import and register subcommands
from dslforge.cli.validate import validate  # noqa: E402
from dslforge.cli.analyze import analyze  # noqa: E402
from dslforge.cli.node_types import node_types  # noqa: E402
from dslforge.cli.serve import serve  # noqa: E402

cli.add_command(validate)
cli.add_command(analyze)
cli.add_command(node_types)
cli.add_command(serve)
