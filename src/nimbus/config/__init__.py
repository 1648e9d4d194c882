"""Configuration loading and persistence for Nimbus services.

Main components:
- ServiceLoader: Load and save service descriptors and configurations,
  and resolve layered publish settings
- Environment variable substitution (${VAR_NAME} pattern)
- Default file names and settings
"""

from nimbus.config.env_loader import get_env_var, substitute_env_vars
from nimbus.config.loader import ServiceLoader

__all__ = [
    "ServiceLoader",
    "substitute_env_vars",
    "get_env_var",
]
