"""Pydantic models for local service descriptors and configurations.

A service root holds a definition (``service.yaml``) listing the roles that
make up the service, plus per-environment configurations
(``service.cloud.yaml`` and ``service.local.yaml``) carrying instance counts,
settings and certificates for each role.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from nimbus.config.defaults import (
    CLOUD_CONFIGURATION_FILE,
    CLOUD_PACKAGE_FILE,
    DEPLOYMENT_SETTINGS_FILE,
    LOCAL_CONFIGURATION_FILE,
    SERVICE_DEFINITION_FILE,
)

SERVICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,62}$")
ROLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


class RoleType(str, Enum):
    """Kind of role hosted by a service."""

    WEB = "web"
    WORKER = "worker"


class RuntimeSpec(BaseModel):
    """Runtime requested by a role.

    Attributes:
        runtime: Runtime identifier (e.g., node, php)
        version: Requested runtime version; the manifest default is used if unset
        override_url: Explicit package URL that bypasses the manifest
    """

    model_config = ConfigDict(extra="forbid")

    runtime: str = Field(default="node", description="Runtime identifier")
    version: str | None = Field(default=None, description="Requested version")
    override_url: str | None = Field(
        default=None, description="Package URL that bypasses the runtime manifest"
    )


class RoleDefinition(BaseModel):
    """A deployable unit of application code inside a service.

    Attributes:
        name: Role name; content lives in ``<service root>/<name>``
        type: Web or worker role
        entry_point: File that must exist in the role directory (e.g., server.js)
        runtime: Runtime requested by the role
        environment: Environment variables set on role instances
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Role name")
    type: RoleType = Field(default=RoleType.WEB, description="Role type")
    entry_point: str | None = Field(
        default=None, description="File that must exist in the role directory"
    )
    runtime: RuntimeSpec | None = Field(default=None, description="Role runtime")
    environment: dict[str, str] = Field(
        default_factory=dict, description="Role instance environment variables"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate role name pattern."""
        if not ROLE_NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid role name: {v}. Must start with a letter or underscore "
                "and contain only letters, digits, '_', '.', '-'"
            )
        return v


class ServiceDescriptor(BaseModel):
    """Local definition of a cloud service.

    Attributes:
        name: Service name, also used for the hosted service
        roles: Ordered list of roles
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Service name")
    roles: list[RoleDefinition] = Field(default_factory=list, description="Roles")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate service name pattern."""
        if not SERVICE_NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid service name: {v}. Must be 1-63 letters, digits, "
                "'_' or '-', starting with a letter or digit"
            )
        return v

    @model_validator(mode="after")
    def validate_unique_roles(self) -> ServiceDescriptor:
        """Validate that role names are unique."""
        seen: set[str] = set()
        for role in self.roles:
            if role.name in seen:
                raise ValueError(f"Duplicate role name: {role.name}")
            seen.add(role.name)
        return self

    def get_role(self, name: str) -> RoleDefinition | None:
        """Return the role with the given name, if any."""
        for role in self.roles:
            if role.name == name:
                return role
        return None


class CertificateSetting(BaseModel):
    """Certificate referenced by a role configuration.

    Attributes:
        name: Certificate name as referenced by the role
        thumbprint: Certificate thumbprint
        thumbprint_algorithm: Thumbprint hash algorithm
        pfx_path: Local PFX file uploaded to the hosted service when missing
        password: PFX password
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Certificate name")
    thumbprint: str = Field(..., description="Certificate thumbprint")
    thumbprint_algorithm: str = Field(default="sha1", description="Hash algorithm")
    pfx_path: str | None = Field(default=None, description="Local PFX file")
    password: str | None = Field(default=None, description="PFX password")


class RoleSettings(BaseModel):
    """Per-environment settings for one role."""

    model_config = ConfigDict(extra="forbid")

    instances: int = Field(default=1, ge=1, description="Instance count")
    settings: dict[str, str] = Field(
        default_factory=dict, description="Configuration settings"
    )
    certificates: list[CertificateSetting] = Field(
        default_factory=list, description="Certificates"
    )


class ServiceConfiguration(BaseModel):
    """Per-environment service configuration.

    Attributes:
        os_family: Guest OS family
        os_version: Guest OS version ('*' for latest)
        roles: Role settings keyed by role name
    """

    model_config = ConfigDict(extra="forbid")

    os_family: str = Field(default="2", description="Guest OS family")
    os_version: str = Field(default="*", description="Guest OS version")
    roles: dict[str, RoleSettings] = Field(
        default_factory=dict, description="Role settings keyed by role name"
    )

    def certificates(self) -> list[CertificateSetting]:
        """Return all certificates declared across roles, deduplicated."""
        found: dict[str, CertificateSetting] = {}
        for role in self.roles.values():
            for cert in role.certificates:
                found.setdefault(cert.thumbprint.upper(), cert)
        return list(found.values())


@dataclass(frozen=True)
class ServicePaths:
    """Well-known file locations under a service root."""

    root: Path
    definition: Path
    cloud_configuration: Path
    local_configuration: Path
    deployment_settings: Path
    package: Path

    @classmethod
    def for_root(cls, root: str | Path) -> ServicePaths:
        """Build the path set for a service root directory."""
        root_path = Path(root).resolve()
        return cls(
            root=root_path,
            definition=root_path / SERVICE_DEFINITION_FILE,
            cloud_configuration=root_path / CLOUD_CONFIGURATION_FILE,
            local_configuration=root_path / LOCAL_CONFIGURATION_FILE,
            deployment_settings=root_path / DEPLOYMENT_SETTINGS_FILE,
            package=root_path / CLOUD_PACKAGE_FILE,
        )

    def role_dir(self, role_name: str) -> Path:
        """Return the content directory of a role."""
        return self.root / role_name
