"""
Validation Commands

This module provides the CLI command that reports problems in a request
file: structural and naming errors, suspicious constructs, and variable
references that cannot be resolved.

Commands:
- validate <file>: Print errors and warnings; exit with 1 on errors.
"""

import sys
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.markup import escape
import click
from restfile.commands.base import RichCommand, rich_help
from restfile.commands.parse import options_select
from restfile.commands.resolve import environment_build, environment_options
from restfile.models.dataModel import RequestFile, ValidationIssue, ValidationResult
from restfile.lib.exceptions import HttpParseError
from restfile.lib.fileparser import parseError_result, text_check
from restfile.lib.processor import HttpFileProcessor
from restfile.lib.log import LOG

console: Console = Console()


def issues_print(title: str, style: str, issues: list[ValidationIssue]) -> None:
    if not issues:
        return
    console.print(f"[bold {style}]{title} ({len(issues)}):[/bold {style}]")
    for issue in issues:
        console.print(f"    [{style}]{escape(str(issue))}[/{style}]")


@click.command(
    cls=RichCommand,
    short_help="Report errors and warnings in a file",
    help=rich_help(
        command="validate",
        description="Validate a request file and its variable references.",
        usage="restfile validate <file> [--env NAME] [--env-file PATH] [--var k=v]",
        args={"<file>": "The request definition file to validate."},
    ),
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@environment_options
@click.option("--strict", is_flag=True, help="Treat the file with strict options.")
@click.option("--lenient", is_flag=True, help="Skip request name enforcement.")
def validate(
    file: Path,
    env_name: Optional[str],
    env_file: Optional[Path],
    pairs: tuple[str, ...],
    strict: bool,
    lenient: bool,
) -> None:
    """
    Validates a request file.

    :param file: Path to the request file.
    """
    environment: dict[str, str] = environment_build(env_name, env_file, pairs)
    processor: HttpFileProcessor = HttpFileProcessor(options_select(strict, lenient))
    content: str = file.read_text(encoding="utf-8")

    request_file: Optional[RequestFile] = None
    try:
        request_file, result = text_check(content, processor.options)
    except HttpParseError as e:
        result = parseError_result(e)

    errors: list[ValidationIssue] = list(result.errors)
    warnings: list[ValidationIssue] = list(result.warnings)

    if request_file is not None and result.is_valid:
        references: ValidationResult = processor.validate_variable_references(
            request_file, environment
        )
        errors.extend(references.errors)
        warnings.extend(references.warnings)

    issues_print("Errors", "red", errors)
    issues_print("Warnings", "yellow", warnings)
    LOG(f"{file}: {len(errors)} error(s), {len(warnings)} warning(s)")

    if errors:
        sys.exit(1)
    console.print(f"[bold green]{escape(str(file))} is valid.[/bold green]")
