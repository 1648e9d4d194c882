"""Configuration loader for Nimbus services.

This module provides the ServiceLoader class for loading, validating and
persisting service descriptors and configurations, and for resolving the
publish settings of a run from layered sources.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from nimbus.config.defaults import (
    ENV_VAR_MAP,
    GLOBAL_CONFIG_DIR,
    GLOBAL_CONFIG_FILE,
    PROJECT_CONFIG_FILE,
)
from nimbus.config.env_loader import (
    get_env_var,
    load_project_env,
    substitute_env_vars,
)
from nimbus.config.validator import validation_message
from nimbus.lib.errors import ConfigError, FileNotFoundError
from nimbus.lib.logging_config import get_logger
from nimbus.models.deployment import PublishSettings
from nimbus.models.service import (
    ServiceConfiguration,
    ServiceDescriptor,
    ServicePaths,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Deep merge override dict into base dict (in-place).

    For nested dicts, merging is recursive.
    For other types, override completely replaces base.
    """
    for key, override_value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(override_value, dict)
        ):
            _deep_merge(base[key], override_value)
        else:
            base[key] = override_value


def _env_overrides(env_vars: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect publish settings from NIMBUS_* variables.

    Reads the process environment unless an explicit mapping is given.
    Empty values count as unset.
    """
    overrides: dict[str, Any] = {}
    for field_name, env_var_name in ENV_VAR_MAP.items():
        if env_vars is None:
            value = get_env_var(env_var_name)
        else:
            value = env_vars.get(env_var_name)
        if value:
            overrides[field_name] = value
    return overrides


def _dump_yaml(model: BaseModel) -> str:
    data = model.model_dump(mode="json", exclude_none=True)
    return yaml.dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


class ServiceLoader:
    """Loads and persists service files and resolves publish settings.

    Service files (``service.yaml`` and the per-environment configurations)
    are rewritten by publish, so they are read verbatim. Settings files
    (``~/.nimbus/config.yaml`` and ``<root>/nimbus.yaml``) support ``${VAR}``
    substitution.
    """

    def __init__(self, home_dir: Path | None = None) -> None:
        """Initialize the loader.

        Args:
            home_dir: Directory holding ``.nimbus/config.yaml`` (user home if unset)
        """
        self.home_dir = home_dir

    def parse_yaml(self, file_path: Path, substitute: bool = False) -> dict[str, Any]:
        """Parse a YAML file into a dictionary.

        Args:
            file_path: Path to the YAML file
            substitute: Apply ``${VAR}`` substitution before parsing

        Returns:
            Parsed mapping, empty if the file is empty

        Raises:
            FileNotFoundError: If the file cannot be read
            ConfigError: If YAML parsing fails
        """
        try:
            raw_text = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            raise FileNotFoundError(
                str(file_path),
                f"Service file not found at {file_path}. "
                "Run 'nimbus new' to create a service.",
            ) from e

        if substitute:
            raw_text = substitute_env_vars(raw_text)

        try:
            content = yaml.safe_load(raw_text)
        except yaml.YAMLError as e:
            raise ConfigError(
                "yaml_parse",
                f"Failed to parse YAML file {file_path}: {str(e)}",
            ) from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigError(
                "yaml_parse",
                f"Expected a mapping at the top of {file_path}",
            )
        return content

    def _validate(
        self, model_cls: type[ModelT], data: dict[str, Any], source: Path, field: str
    ) -> ModelT:
        try:
            return model_cls(**data)
        except PydanticValidationError as e:
            subject = field.replace("_", " ")
            raise ConfigError(field, validation_message(e, subject, source)) from e

    def _write(self, path: Path, model: BaseModel, field: str) -> None:
        try:
            path.write_text(_dump_yaml(model), encoding="utf-8")
        except OSError as e:
            raise ConfigError(field, f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved {path}")

    def load_descriptor(self, paths: ServicePaths) -> ServiceDescriptor:
        """Load and validate the service definition of a service root."""
        data = self.parse_yaml(paths.definition)
        return self._validate(
            ServiceDescriptor, data, paths.definition, "service_definition"
        )

    def save_descriptor(
        self, paths: ServicePaths, descriptor: ServiceDescriptor
    ) -> None:
        """Persist the service definition."""
        self._write(paths.definition, descriptor, "service_definition")

    def load_configuration(self, path: Path) -> ServiceConfiguration:
        """Load and validate a per-environment service configuration."""
        data = self.parse_yaml(path)
        return self._validate(ServiceConfiguration, data, path, "service_configuration")

    def save_configuration(
        self, path: Path, configuration: ServiceConfiguration
    ) -> None:
        """Persist a per-environment service configuration."""
        self._write(path, configuration, "service_configuration")

    def load_global_config(self) -> dict[str, Any]:
        """Load ``~/.nimbus/config.yaml`` if it exists."""
        home = self.home_dir if self.home_dir is not None else Path.home()
        config_path = home / GLOBAL_CONFIG_DIR / GLOBAL_CONFIG_FILE
        if not config_path.is_file():
            return {}
        logger.debug(f"Loading global configuration from {config_path}")
        return self.parse_yaml(config_path, substitute=True)

    def load_project_config(self, service_root: Path) -> dict[str, Any]:
        """Load ``<service root>/nimbus.yaml`` if it exists."""
        config_path = Path(service_root) / PROJECT_CONFIG_FILE
        if not config_path.is_file():
            return {}
        logger.debug(f"Loading project configuration from {config_path}")
        return self.parse_yaml(config_path, substitute=True)

    def load_publish_settings(
        self,
        service_root: Path,
        overrides: dict[str, Any] | None = None,
        env_vars: Mapping[str, str] | None = None,
    ) -> PublishSettings:
        """Resolve the publish settings of a service.

        Configuration precedence (highest to lowest):
        1. Explicit overrides (CLI flags); None values are ignored
        2. NIMBUS_* environment variables (``<root>/.env`` is loaded first)
        3. Project-level ``nimbus.yaml``
        4. Global ``~/.nimbus/config.yaml``
        5. Model defaults

        Raises:
            ConfigError: If any source is malformed or the result is invalid
        """
        if env_vars is None:
            load_project_env(service_root)

        merged: dict[str, Any] = {}
        _deep_merge(merged, self.load_global_config())
        _deep_merge(merged, self.load_project_config(service_root))
        _deep_merge(merged, _env_overrides(env_vars))
        if overrides:
            _deep_merge(
                merged, {k: v for k, v in overrides.items() if v is not None}
            )

        return self._validate(
            PublishSettings, merged, Path(service_root), "publish_settings"
        )
