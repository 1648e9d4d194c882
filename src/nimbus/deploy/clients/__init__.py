"""Remote management clients for Nimbus publishing."""

from __future__ import annotations

from nimbus.deploy.clients.base import PackageUploader, ServiceManagementClient
from nimbus.lib.errors import ConfigError
from nimbus.models.deployment import PublishSettings


def create_client(settings: PublishSettings) -> ServiceManagementClient:
    """Create the service management client for the configured subscription."""
    if not settings.subscription_id:
        raise ConfigError(
            "subscription_id",
            "A subscription id is required to publish. Set NIMBUS_SUBSCRIPTION_ID "
            "or subscription_id in nimbus.yaml.",
        )
    if not settings.management_certificate:
        raise ConfigError(
            "management_certificate",
            "A management certificate is required to publish. Set "
            "NIMBUS_MANAGEMENT_CERTIFICATE or management_certificate in nimbus.yaml.",
        )

    from nimbus.deploy.clients.azure_servicemanagement import (
        AzureServiceManagementClient,
    )

    return AzureServiceManagementClient(
        settings.subscription_id, settings.management_certificate
    )


def create_uploader(settings: PublishSettings) -> PackageUploader:
    """Create the package uploader."""
    from nimbus.deploy.clients.azure_blob import AzureBlobUploader

    return AzureBlobUploader(container=settings.upload_container)


__all__ = [
    "PackageUploader",
    "ServiceManagementClient",
    "create_client",
    "create_uploader",
]
