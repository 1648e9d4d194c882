"""Pydantic models for publish settings and remote deployment state.

This module defines the publish configuration schema along with the typed
views of remote resources (hosted services, deployments, storage accounts)
returned by management clients.
"""

import re
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from nimbus.config.defaults import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_LOCATION,
    DEFAULT_UPLOAD_CONTAINER,
    DEFAULT_WAIT_POLICY,
)


class DeploymentSlot(str, Enum):
    """Deployment slots of a hosted service."""

    PRODUCTION = "Production"
    STAGING = "Staging"

    @classmethod
    def parse(cls, value: "str | DeploymentSlot") -> "DeploymentSlot":
        """Parse a slot name case-insensitively."""
        if isinstance(value, cls):
            return value
        for slot in cls:
            if slot.value.lower() == str(value).strip().lower():
                return slot
        valid = ", ".join(slot.value for slot in cls)
        raise ValueError(f"Invalid deployment slot: {value}. Must be one of: {valid}")


class DeploymentStatus(str, Enum):
    """Status of a deployment as reported by the provider."""

    RUNNING = "Running"
    SUSPENDED = "Suspended"
    RUNNING_TRANSITIONING = "RunningTransitioning"
    SUSPENDED_TRANSITIONING = "SuspendedTransitioning"
    STARTING = "Starting"
    SUSPENDING = "Suspending"
    DEPLOYING = "Deploying"
    DELETING = "Deleting"
    UNKNOWN = "Unknown"


class RoleInstanceStatus(str, Enum):
    """Status of a single role instance."""

    READY = "ReadyRole"
    BUSY = "BusyRole"
    CYCLING = "CyclingRole"
    INITIALIZING = "Initializing"
    STOPPED = "StoppedVM"
    UNKNOWN = "RoleStateUnknown"


class StorageStatus(str, Enum):
    """Provisioning status of a storage account."""

    CREATING = "Creating"
    CREATED = "Created"
    RESOLVING_DNS = "ResolvingDns"
    DELETING = "Deleting"
    UNKNOWN = "Unknown"


def parse_status(enum_cls: type[Enum], value: Any) -> Any:
    """Map a provider string onto an enum, falling back to its UNKNOWN member."""
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return enum_cls["UNKNOWN"]


STORAGE_ACCOUNT_PATTERN = re.compile(r"^[a-z0-9]{3,24}$")


class RoleInstance(BaseModel):
    """A running instance of a role."""

    model_config = ConfigDict(extra="forbid")

    role_name: str = Field(..., description="Role the instance belongs to")
    instance_name: str = Field(..., description="Instance name")
    instance_status: RoleInstanceStatus = Field(..., description="Instance status")


class DeploymentStatusSnapshot(BaseModel):
    """Observed state of the deployment in one slot.

    Attributes:
        name: Deployment name
        slot: Slot the deployment occupies
        status: Deployment status
        role_instances: Role instances reported by the provider
        url: Public URL of the deployment
        label: Deployment label
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Deployment name")
    slot: DeploymentSlot = Field(..., description="Deployment slot")
    status: DeploymentStatus = Field(..., description="Deployment status")
    role_instances: list[RoleInstance] = Field(
        default_factory=list, description="Role instances"
    )
    url: str | None = Field(default=None, description="Public URL")
    label: str | None = Field(default=None, description="Deployment label")

    def all_instances_ready(self) -> bool:
        """Return True when at least one instance exists and all are ready."""
        return bool(self.role_instances) and all(
            instance.instance_status == RoleInstanceStatus.READY
            for instance in self.role_instances
        )


class HostedServiceDetails(BaseModel):
    """A hosted service and the deployments it currently holds."""

    model_config = ConfigDict(extra="forbid")

    service_name: str = Field(..., description="Hosted service name")
    label: str | None = Field(default=None, description="Service label")
    location: str | None = Field(default=None, description="Service location")
    affinity_group: str | None = Field(default=None, description="Affinity group")
    deployments: list[DeploymentStatusSnapshot] = Field(
        default_factory=list, description="Deployments in any slot"
    )

    def deployment_in(self, slot: DeploymentSlot) -> DeploymentStatusSnapshot | None:
        """Return the deployment occupying a slot, if any."""
        for deployment in self.deployments:
            if deployment.slot == slot:
                return deployment
        return None


class StorageServiceDetails(BaseModel):
    """A storage account and its provisioning status.

    A missing status is treated as ready by the orchestrator; some provider
    responses omit it once provisioning is done.
    """

    model_config = ConfigDict(extra="forbid")

    service_name: str = Field(..., description="Storage account name")
    status: StorageStatus | None = Field(default=None, description="Status")
    location: str | None = Field(default=None, description="Account location")


class StorageKeys(BaseModel):
    """Access keys of a storage account."""

    model_config = ConfigDict(extra="forbid")

    primary: str = Field(..., description="Primary access key")
    secondary: str | None = Field(default=None, description="Secondary access key")


class Certificate(BaseModel):
    """Service certificate registered on a hosted service."""

    model_config = ConfigDict(extra="forbid")

    thumbprint: str = Field(..., description="Certificate thumbprint")
    thumbprint_algorithm: str = Field(default="sha1", description="Hash algorithm")
    url: str | None = Field(default=None, description="Certificate resource URL")


class DeploymentRequest(BaseModel):
    """Everything needed to create or upgrade a deployment.

    Attributes:
        service_name: Hosted service name
        slot: Target slot
        deployment_name: Name of the deployment
        package_url: URL of the uploaded package
        configuration: Service configuration document sent with the request
        label: Deployment label
        start_deployment: Start the deployment immediately after creation
        treat_warnings_as_error: Fail creation on provider warnings
        upgrade_mode: Upgrade mode for in-place upgrades (Auto or Manual)
        force: Force the upgrade even if it would lose local data
    """

    model_config = ConfigDict(extra="forbid")

    service_name: str = Field(..., description="Hosted service name")
    slot: DeploymentSlot = Field(..., description="Target slot")
    deployment_name: str = Field(..., description="Deployment name")
    package_url: str = Field(..., description="Package URL")
    configuration: str = Field(..., description="Service configuration document")
    label: str = Field(..., description="Deployment label")
    start_deployment: bool = Field(default=True, description="Start after create")
    treat_warnings_as_error: bool = Field(
        default=False, description="Fail creation on provider warnings"
    )
    upgrade_mode: str = Field(default="Auto", description="Upgrade mode")
    force: bool = Field(default=False, description="Force the upgrade")

    @field_validator("upgrade_mode")
    @classmethod
    def validate_upgrade_mode(cls, v: str) -> str:
        """Validate the upgrade mode."""
        if v not in ("Auto", "Manual"):
            raise ValueError(f"Invalid upgrade mode: {v}. Must be Auto or Manual.")
        return v


class WaitPolicy(BaseModel):
    """Polling policy of the completion waiter.

    Attributes:
        interval: Seconds between the first polls
        backoff: Multiplier applied to the interval after each poll
        max_interval: Upper bound on the interval
        max_attempts: Maximum number of polls
        timeout: Overall time bound in seconds (None to rely on max_attempts)
    """

    model_config = ConfigDict(extra="forbid")

    interval: float = Field(
        default=DEFAULT_WAIT_POLICY["interval"], ge=0, description="Poll interval"
    )
    backoff: float = Field(
        default=DEFAULT_WAIT_POLICY["backoff"], ge=1, description="Backoff factor"
    )
    max_interval: float = Field(
        default=DEFAULT_WAIT_POLICY["max_interval"], ge=0, description="Interval cap"
    )
    max_attempts: int = Field(
        default=DEFAULT_WAIT_POLICY["max_attempts"], ge=1, description="Max polls"
    )
    timeout: float | None = Field(
        default=DEFAULT_WAIT_POLICY["timeout"], gt=0, description="Time bound"
    )

    def delay(self, attempt: int) -> float:
        """Return the sleep duration after the given (zero-based) poll."""
        return min(self.interval * (self.backoff**attempt), self.max_interval)


class PublishSettings(BaseModel):
    """Resolved settings for a publish run.

    Attributes:
        subscription_id: Subscription that owns the hosted service
        management_certificate: Path to the management certificate (PEM)
        location: Location for newly created resources
        affinity_group: Affinity group for newly created resources
        slot: Deployment slot to publish to
        storage_account: Storage account override (derived from the name if unset)
        label: Deployment label (service name if unset)
        exclude_patterns: Glob patterns of path segments excluded from packages
        runtime_manifest: Runtime manifest file or URL
        upload_container: Blob container receiving packages
        require_running: Wait for Running instead of accepting Starting
        wait: Completion waiter policy
    """

    model_config = ConfigDict(extra="forbid")

    subscription_id: str | None = Field(default=None, description="Subscription ID")
    management_certificate: str | None = Field(
        default=None, description="Management certificate path"
    )
    location: str | None = Field(
        default=DEFAULT_LOCATION, description="Location for new resources"
    )
    affinity_group: str | None = Field(default=None, description="Affinity group")
    slot: DeploymentSlot = Field(
        default=DeploymentSlot.PRODUCTION, description="Deployment slot"
    )
    storage_account: str | None = Field(
        default=None, description="Storage account override"
    )
    label: str | None = Field(default=None, description="Deployment label")
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Excluded path segment globs",
    )
    runtime_manifest: str | None = Field(
        default=None, description="Runtime manifest file or URL"
    )
    upload_container: str = Field(
        default=DEFAULT_UPLOAD_CONTAINER, description="Blob container for packages"
    )
    require_running: bool = Field(
        default=False, description="Wait for Running instead of Starting"
    )
    wait: WaitPolicy = Field(default_factory=WaitPolicy, description="Wait policy")

    @field_validator("slot", mode="before")
    @classmethod
    def validate_slot(cls, v: Any) -> Any:
        """Accept slot names case-insensitively."""
        if isinstance(v, str):
            return DeploymentSlot.parse(v)
        return v

    @field_validator("storage_account")
    @classmethod
    def validate_storage_account(cls, v: str | None) -> str | None:
        """Validate storage account naming rules."""
        if v is not None and not STORAGE_ACCOUNT_PATTERN.match(v):
            raise ValueError(
                f"Invalid storage account name: {v}. Must be 3-24 lowercase "
                "letters or digits."
            )
        return v

    @model_validator(mode="after")
    def validate_placement(self) -> "PublishSettings":
        """Validate that new resources can be placed somewhere."""
        if not self.location and not self.affinity_group:
            raise ValueError("Either location or affinity_group must be set")
        return self
