"""Environment variable helpers for Nimbus configuration files.

Supports ``${VAR_NAME}`` substitution inside YAML text and loading ``.env``
files through python-dotenv.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import load_dotenv

from nimbus.lib.errors import ConfigError

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def substitute_env_vars(text: str) -> str:
    """Replace ``${VAR}`` references with values from the environment.

    Args:
        text: Raw text possibly containing ``${VAR}`` references

    Returns:
        Text with every reference replaced

    Raises:
        ConfigError: If a referenced variable is not set
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        value = os.environ.get(name)
        if value is None:
            raise ConfigError(
                name,
                f"Environment variable '{name}' is referenced but not set",
            )
        return value

    return ENV_VAR_PATTERN.sub(_replace, text)


def get_env_var(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, treating empty strings as unset."""
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


def load_project_env(project_dir: str | Path) -> bool:
    """Load ``<project_dir>/.env`` into the process environment.

    Existing environment variables win over the file.

    Returns:
        True if a file was loaded
    """
    env_path = Path(project_dir) / ".env"
    if not env_path.is_file():
        return False
    return load_dotenv(env_path, override=False)
