"""
Parsing Commands

This module provides CLI commands that show how a request file is read.

Commands:
- parse <file>: Tabulate the requests found in a file.
- tokens <file>: Dump the token stream of a file.
"""

import sys
from pathlib import Path
from rich.console import Console
from rich.markup import escape
from rich.table import Table
import click
from restfile.commands.base import RichCommand, rich_help
from restfile.models.dataModel import HttpRequest, ParseOptions, RequestFile, Token
from restfile.lib.exceptions import HttpParseError
from restfile.lib.fileparser import file_parse
from restfile.lib.tokenizer import text_tokenize
from restfile.lib.log import LOG

console: Console = Console()


def options_select(strict: bool, lenient: bool) -> ParseOptions:
    """
    Choose parse options from command flags.

    :param strict: Use strict options.
    :param lenient: Use lenient options; ignored when strict is set.
    :return: The options; otherwise those built from settings.
    """
    if strict:
        return ParseOptions.strict()
    if lenient:
        return ParseOptions.lenient()
    return ParseOptions.from_settings()


def requestFile_load(path: str, options: ParseOptions) -> RequestFile:
    """
    Parse a file, reporting parse errors and exiting with code 2.
    """
    try:
        return file_parse(path, options)
    except HttpParseError as e:
        LOG(f"Parse failed: {e}")
        console.print(f"[bold red]Parse error:[/bold red] {escape(str(e))}")
        sys.exit(2)


def body_describe(request: HttpRequest) -> str:
    if request.file_body is not None:
        return str(request.file_body)
    if request.body is not None:
        return f"{len(request.body)} chars"
    return "-"


def requests_table(request_file: RequestFile) -> Table:
    table: Table = Table(title=request_file.source_path or "requests")
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Method", style="magenta")
    table.add_column("URL", style="green")
    table.add_column("Headers", justify="right")
    table.add_column("Body")
    table.add_column("Expectations", justify="right")
    for request in request_file.requests:
        table.add_row(
            str(request.line),
            escape(request.name),
            escape(request.method),
            escape(request.url),
            str(len(request.headers)),
            escape(body_describe(request)),
            str(len(request.metadata.expectations)),
        )
    return table


@click.command(
    cls=RichCommand,
    short_help="List the requests in a file",
    help=rich_help(
        command="parse",
        description="Parse a request file and list its requests.",
        usage="restfile parse <file> [--strict|--lenient]",
        args={"<file>": "The request definition file to parse."},
    ),
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--strict", is_flag=True, help="Fail on the first validation error.")
@click.option("--lenient", is_flag=True, help="Skip request name enforcement.")
def parse(file: Path, strict: bool, lenient: bool) -> None:
    """
    Parses a request file and prints a table of its requests.

    :param file: Path to the request file.
    :param strict: Fail on the first validation error.
    :param lenient: Skip request name enforcement.
    """
    request_file: RequestFile = requestFile_load(str(file), options_select(strict, lenient))
    console.print(requests_table(request_file))
    if request_file.variables:
        console.print("[bold yellow]File variables:[/bold yellow]")
        for name, value in request_file.variables.items():
            console.print(f"    [green]@{name}[/green] = {escape(value)}")


@click.command(
    cls=RichCommand,
    short_help="Dump the token stream of a file",
    help=rich_help(
        command="tokens",
        description="Tokenize a request file and print every token.",
        usage="restfile tokens <file>",
        args={"<file>": "The request definition file to tokenize."},
    ),
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def tokens(file: Path) -> None:
    """
    Prints the tokens of a request file, one per line.

    :param file: Path to the request file.
    """
    stream: list[Token] = text_tokenize(file.read_text(encoding="utf-8"))
    for token in stream:
        console.print(
            f"[dim]{token.line:>4}:{token.column:<3}[/dim] "
            f"[cyan]{token.kind.name:<26}[/cyan] {escape(token.value)}",
            highlight=False,
        )
