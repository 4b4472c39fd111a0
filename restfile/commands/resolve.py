"""
Resolution Commands

This module provides the CLI command that prints requests with every
variable, environment reference and system function substituted.

Commands:
- resolve <file> [name]: Print resolved requests.

Environment values come from the environments file (selected with --env),
overridden by individual --var name=value pairs.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Optional
from rich.console import Console
from rich.markup import escape
import click
from restfile.commands.base import RichCommand, rich_help
from restfile.commands.parse import options_select, requestFile_load
from restfile.config.settings import environment_select, environments_load
from restfile.models.dataModel import HttpRequest, RequestFile
from restfile.lib.processor import HttpFileProcessor
from restfile.lib.log import LOG

console: Console = Console()


def variablePairs_parse(pairs: tuple[str, ...]) -> dict[str, str]:
    """
    Parse `name=value` pairs given on the command line.

    :param pairs: Raw pairs.
    :return: Mapping of names to values.
    :raises click.BadParameter: If a pair has no `=` or an empty name.
    """
    variables: dict[str, str] = {}
    for pair in pairs:
        name, separator, value = pair.partition("=")
        if not separator or not name.strip():
            raise click.BadParameter(f"Expected name=value, got '{pair}'", param_hint="--var")
        variables[name.strip()] = value
    return variables


def environment_build(
    env_name: Optional[str], env_file: Optional[Path], pairs: tuple[str, ...]
) -> dict[str, str]:
    """
    Assemble the environment used for resolution.

    :param env_name: Environment to select from the environments file.
    :param env_file: Environments file overriding the configured one.
    :param pairs: `name=value` overrides.
    :return: The merged environment.
    """
    environment: dict[str, str] = {}
    try:
        environment = environment_select(environments_load(env_file), env_name)
    except (KeyError, ValueError) as e:
        message: str = e.args[0] if e.args else str(e)
        LOG(f"Environment selection failed: {message}")
        console.print(f"[bold red]Environment error:[/bold red] {escape(str(message))}")
        sys.exit(1)
    environment.update(variablePairs_parse(pairs))
    return environment


def environment_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the --env, --env-file and --var options to a command."""
    func = click.option(
        "--var",
        "pairs",
        multiple=True,
        help="Set a variable as name=value; may be repeated.",
    )(func)
    func = click.option(
        "--env-file",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Environments file to read.",
    )(func)
    func = click.option("--env", "env_name", help="Environment to select.")(func)
    return func


def request_print(request: HttpRequest) -> None:
    console.print(f"[bold cyan]### {escape(request.name)}[/bold cyan]")
    console.print(f"[magenta]{escape(request.method)}[/magenta] {escape(request.url)}")
    for name, value in request.headers.items():
        console.print(f"[green]{escape(name)}[/green]: {escape(value)}")
    if request.file_body is not None:
        console.print()
        console.print(escape(str(request.file_body)))
    elif request.body is not None:
        console.print()
        console.print(escape(request.body), highlight=False)
    console.print()


@click.command(
    cls=RichCommand,
    short_help="Print requests with variables resolved",
    help=rich_help(
        command="resolve",
        description="Resolve variables and system functions in a request file.",
        usage="restfile resolve <file> [name] [--env NAME] [--env-file PATH] [--var k=v]",
        args={
            "<file>": "The request definition file.",
            "[name]": "Only resolve the request with this name.",
        },
    ),
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("name", required=False)
@environment_options
@click.option("--strict", is_flag=True, help="Fail on the first validation error.")
@click.option("--lenient", is_flag=True, help="Skip request name enforcement.")
def resolve(
    file: Path,
    name: Optional[str],
    env_name: Optional[str],
    env_file: Optional[Path],
    pairs: tuple[str, ...],
    strict: bool,
    lenient: bool,
) -> None:
    """
    Prints resolved requests.

    :param file: Path to the request file.
    :param name: Optional request name.
    """
    environment: dict[str, str] = environment_build(env_name, env_file, pairs)
    processor: HttpFileProcessor = HttpFileProcessor(options_select(strict, lenient))
    request_file: RequestFile = requestFile_load(str(file), processor.options)

    if name:
        request: HttpRequest | None = processor.processed_request_get(
            request_file, name, environment
        )
        if request is None:
            console.print(f"[bold red]Request '{escape(name)}' not found.[/bold red]")
            sys.exit(1)
        request_print(request)
        return

    for request in processor.processed_requests_get(request_file, environment):
        request_print(request)
