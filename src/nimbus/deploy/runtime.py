"""Runtime manifest loading and role runtime patching."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import requests
import yaml
from pydantic import ValidationError as PydanticValidationError

from nimbus.config.defaults import (
    RUNTIME_OVERRIDE_URL_VARIABLE,
    RUNTIME_URL_VARIABLE,
)
from nimbus.config.validator import validation_message
from nimbus.lib.errors import ConfigError
from nimbus.lib.logging_config import get_logger
from nimbus.models.runtime import IISNODE_RUNTIME, RuntimeManifest
from nimbus.models.service import (
    RoleDefinition,
    RoleType,
    RuntimeSpec,
    ServiceDescriptor,
)

logger = get_logger(__name__)

MANIFEST_DOWNLOAD_TIMEOUT = 30  # seconds


def load_runtime_manifest(
    source: str, timeout: float = MANIFEST_DOWNLOAD_TIMEOUT
) -> RuntimeManifest:
    """Load a runtime manifest from a local file or an http(s) URL.

    Raises:
        ConfigError: If the manifest cannot be fetched, parsed or validated
    """
    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ConfigError(
                "runtime_manifest",
                f"Failed to download runtime manifest from {source}: {e}",
            ) from e
        text = response.text
    else:
        try:
            text = Path(source).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                "runtime_manifest",
                f"Failed to read runtime manifest at {source}: {e}",
            ) from e

    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(
            "runtime_manifest", f"Failed to parse runtime manifest {source}: {e}"
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            "runtime_manifest", f"Runtime manifest {source} must be a mapping"
        )

    try:
        return RuntimeManifest(**data)
    except PydanticValidationError as e:
        raise ConfigError(
            "runtime_manifest", validation_message(e, "runtime manifest", source)
        ) from e


def resolve_runtime_urls(role: RoleDefinition, manifest: RuntimeManifest) -> list[str]:
    """Return the package URLs a role should be provisioned with.

    Raises:
        ConfigError: If the manifest has no package for the role's runtime
    """
    spec = role.runtime or RuntimeSpec()
    package = manifest.find(spec.runtime, spec.version)
    if package is None:
        raise ConfigError(
            f"roles.{role.name}.runtime",
            f"Runtime manifest has no '{spec.runtime}' package "
            f"(requested version: {spec.version or 'default'})",
        )
    urls = [manifest.url_for(package)]

    if role.type == RoleType.WEB:
        iisnode = manifest.find(IISNODE_RUNTIME)
        if iisnode is not None:
            urls.append(manifest.url_for(iisnode))
    return urls


def apply_runtime_manifest(
    descriptor: ServiceDescriptor, manifest: RuntimeManifest
) -> list[str]:
    """Write runtime package variables into each role's environment.

    A role with an ``override_url`` gets RUNTIMEOVERRIDEURL and no RUNTIMEURL;
    every other role gets RUNTIMEURL with its ';'-joined package URLs.

    Returns:
        Names of the roles whose environment changed
    """
    changed: list[str] = []
    for role in descriptor.roles:
        before = dict(role.environment)
        if role.runtime is not None and role.runtime.override_url:
            role.environment.pop(RUNTIME_URL_VARIABLE, None)
            role.environment[RUNTIME_OVERRIDE_URL_VARIABLE] = role.runtime.override_url
        else:
            role.environment.pop(RUNTIME_OVERRIDE_URL_VARIABLE, None)
            urls = resolve_runtime_urls(role, manifest)
            role.environment[RUNTIME_URL_VARIABLE] = ";".join(urls)
        if role.environment != before:
            logger.debug(f"Updated runtime of role {role.name}: {role.environment}")
            changed.append(role.name)
    return changed
