"""
Centralized application-specific logging using Loguru.

This module provides a function-based logging mechanism (`LOG`) that dynamically
respects the `beQuiet` flag from application settings.

Features:
- A custom `LOG` function for debug logging from the parsing and resolution layers.
- Dynamic checking of the `beQuiet` flag to suppress logs when necessary.
- Consistent and customizable logging format.

Usage:
- Use `LOG` for application-specific debug logging.
- The `beQuiet` flag controls whether logs are displayed.

Example:
    from restfile.lib.log import LOG
    LOG("Tokenized 12 lines")

Environment:
- Set `RESTFILE_BEQUIET=false` to see detailed logging output.
"""

from loguru import logger
from typing import Any
import sys

# Create a distinct logger instance for the app
app_logger = logger.bind(app="RESTFILE")

# Configure the app-specific logger
logger_format = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<yellow>{name: >28}</yellow>::"
    "<cyan>{function: <30}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)


def record_filter(record: dict[str, Any]) -> bool:
    """Accept only records emitted through `app_logger`."""
    return record["extra"].get("app") == "RESTFILE"


# Sinks already registered by a host application are left in place
handler_id: int = logger.add(sys.stderr, format=logger_format, filter=record_filter)


def LOG(*args: Any, **kwargs: Any) -> None:
    """
    Application-specific logging function.

    This function checks the `beQuiet` flag in `appsettings` and logs the message
    only if logging is enabled.

    :param args: Positional arguments for the log message.
    :param kwargs: Keyword arguments for additional log metadata.
    """
    try:
        from restfile.config.settings import appsettings  # Ensure up-to-date settings

        if not appsettings.beQuiet:
            app_logger.opt(depth=1).debug(*args, **kwargs)
    except Exception as e:
        print(f"Logging error: {e}")  # Fallback to standard output on failure
