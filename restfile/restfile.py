"""
restfile Main Module.

This module serves as the main entry point for restfile, a toolkit for HTTP
request definition files: several named requests per file, file variables,
metadata directives and a small templating layer.

Features:
- Lists the requests and variables of a file
- Dumps the token stream the parser works from
- Validates files and reports unresolved or circular variable references
- Prints requests with variables, environments and system functions resolved
- Handles graceful termination on user interruption

Examples:
    List requests:
        $ restfile parse api.http

    Validate against the "local" environment:
        $ restfile validate api.http --env local

    Resolve one request with an override:
        $ restfile resolve api.http login --var password=secret
"""

import signal
import sys
from types import FrameType
from typing import Final, Optional
from rich.console import Console

__version__: Final[str] = "0.1.0"

console: Final[Console] = Console()


def signal_handle(sig: int, frame: Optional[FrameType]) -> None:
    """Signal handler for graceful interruption.

    Args:
        sig: Signal number
        frame: Current stack frame
    """
    console.print("\n[bold red]Interrupt received. Exiting.[/bold red]")
    sys.exit(130)


def main() -> None:
    """Main entry point for the command line.

    Note:
        Registers the SIGINT handler and hands over to the click group
    """
    from restfile.commands.app import cli  # Import here to avoid circular import

    signal.signal(signal.SIGINT, signal_handle)
    cli()


if __name__ == "__main__":
    main()
