"""
settings.py

This module provides application configuration management for the restfile
package.

Features:
- Centralized application configuration using Pydantic settings
- Location of the per-user configuration directory
- Loading and selection of named environments from an environments file

Usage:
Import appsettings for application configuration values.

Environments file:
    A JSON object mapping environment names to variable maps. An optional
    "$shared" section provides defaults merged under every environment:

        {
            "$shared": {"version": "v1"},
            "local": {"baseUrl": "http://localhost:5000"},
            "production": {"baseUrl": "https://api.example.com"}
        }
"""

import json
from pathlib import Path
from typing import Any, Final
from appdirs import user_config_dir
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from restfile.lib.log import LOG

# Console instance for rich output
console: Final[Console] = Console()

# Set up the configuration directory and environments file using appdirs
CONFIG_DIR: Final[Path] = Path(user_config_dir("restfile", ""))
ENVIRONMENT_FILE: Final[Path] = CONFIG_DIR / "environments.json"

SHARED_ENVIRONMENT: Final[str] = "$shared"


class App(BaseSettings):
    """
    Application settings model.

    Provides a centralized configuration for parsing and resolution behavior.
    Settings can be overridden through environment variables with RESTFILE_ prefix.

    Attributes:
        beQuiet: Suppress detailed logging output
        strictMode: Raise the first post-parse validation error
        validateRequestNames: Enforce unique request names while parsing
        maxRequestNameLength: Longest accepted request name
        maxResolveDepth: Cap on nested file-variable resolution; 0 derives
            the cap from the number of declared variables
        environmentName: Environment selected when none is given
        environmentFile: Environments file used when none is given
    """

    beQuiet: bool = True
    strictMode: bool = False
    validateRequestNames: bool = True
    maxRequestNameLength: int = 50
    maxResolveDepth: int = 0

    environmentName: str | None = None
    environmentFile: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="RESTFILE_",  # Environment variables with this prefix override settings
        case_sensitive=False,  # Allow case-insensitive environment variables
        extra="allow",  # Allow additional attributes not defined in the model
    )


def json_validate(data: Any) -> bool:
    """
    Validate that an environments document has the expected shape.

    The document must be an object whose values are objects of string-able
    scalars.

    Args:
        data: The decoded JSON document

    Returns:
        bool: True if the shape is valid, False otherwise
    """
    if not isinstance(data, dict):
        LOG("Environments document is not a JSON object")
        return False
    for name, variables in data.items():
        if not isinstance(variables, dict):
            LOG(f"Environment '{name}' is not a JSON object")
            return False
        for key, value in variables.items():
            if isinstance(value, (dict, list)):
                LOG(f"Environment '{name}' variable '{key}' is not a scalar")
                return False
    return True


def environments_load(path: Path | None = None) -> dict[str, dict[str, str]]:
    """
    Load named environments from a JSON environments file.

    A missing file yields no environments. Values are converted to strings.

    Args:
        path: File to read; defaults to the configured or per-user file

    Returns:
        dict: Environment name to variable map

    Raises:
        ValueError: If the file is not valid JSON or has the wrong shape
    """
    env_path: Path = path or appsettings.environmentFile or ENVIRONMENT_FILE
    if not env_path.exists():
        LOG(f"No environments file at {env_path}")
        return {}

    try:
        data: Any = json.loads(env_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid environments file {env_path}: {e}") from e

    if not json_validate(data):
        raise ValueError(f"Invalid environments file {env_path}: unexpected structure")

    environments: dict[str, dict[str, str]] = {
        name: {key: str(value) for key, value in variables.items()}
        for name, variables in data.items()
    }
    LOG(f"Loaded {len(environments)} environment(s) from {env_path}")
    return environments


def environment_select(
    environments: dict[str, dict[str, str]], name: str | None = None
) -> dict[str, str]:
    """
    Select one environment, merged over the shared section.

    Args:
        environments: Loaded environments
        name: Environment to select; defaults to the configured one

    Returns:
        dict: The variable map; only shared values when no name is selected

    Raises:
        KeyError: If the named environment does not exist
    """
    selected: str | None = name or appsettings.environmentName
    merged: dict[str, str] = dict(environments.get(SHARED_ENVIRONMENT, {}))
    if not selected:
        return merged
    if selected not in environments:
        raise KeyError(f"Environment '{selected}' not found")
    merged.update(environments[selected])
    return merged


# Create the application settings instance
appsettings: Final[App] = App()
