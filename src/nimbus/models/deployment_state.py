"""Deployment settings model persisted next to a service."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from nimbus.models.deployment import DeploymentSlot


class DeploymentSettings(BaseModel):
    """Record of the last publish of a service (``deploymentSettings.json``)."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0", description="Settings file version")
    subscription_id: str | None = Field(default=None, description="Subscription ID")
    service_name: str = Field(..., description="Hosted service name")
    slot: DeploymentSlot = Field(..., description="Deployment slot")
    location: str | None = Field(default=None, description="Service location")
    affinity_group: str | None = Field(default=None, description="Affinity group")
    storage_account: str = Field(..., description="Storage account name")
    deployment_name: str | None = Field(
        default=None, description="Name of the last deployment"
    )
    label: str | None = Field(default=None, description="Deployment label")
    package_url: str | None = Field(default=None, description="Last package URL")
    status: str | None = Field(default=None, description="Last observed status")
    url: str | None = Field(default=None, description="Deployment URL")
    created_at: datetime | None = Field(
        default=None, description="First publish timestamp"
    )
    updated_at: datetime | None = Field(
        default=None, description="Last publish timestamp"
    )
