"""
Defines the main Click command group for the restfile application.

This module provides:
- The root `cli` command group for the application.
- Integration with Rich-enhanced Click classes (`RichGroup`).
- Registration of subcommands from other modules.

Usage:
Import `cli` to initialize and run the command-line interface.
"""

import click
from restfile.commands.base import RichGroup
from restfile.commands.parse import parse, tokens
from restfile.commands.validate import validate
from restfile.commands.resolve import resolve
from restfile.restfile import __version__


@click.group(
    cls=RichGroup,
    help="""
    restfile

    Parse, validate and resolve HTTP request definition files.
    """,
)
@click.version_option(__version__, "-V", "--version", prog_name="restfile")
def cli() -> None:
    """
    The root Click command group for restfile.
    """
    pass


# Explicitly annotate `cli` as `click.Group` for static type checking
cli: click.Group = cli

# Register subcommands
cli.add_command(parse)
cli.add_command(tokens)
cli.add_command(validate)
cli.add_command(resolve)
