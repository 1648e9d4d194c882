"""Base interfaces for remote management clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from nimbus.models.deployment import (
    Certificate,
    DeploymentRequest,
    DeploymentSlot,
    DeploymentStatusSnapshot,
    HostedServiceDetails,
    StorageKeys,
    StorageServiceDetails,
)


class ServiceManagementClient(ABC):
    """Abstract client of the remote service management API.

    Implementations translate provider responses into Nimbus models. A lookup
    of a resource that does not exist raises ResourceNotFoundError; any other
    failure raises RemoteCallError (AuthorizationError for HTTP 403).
    """

    @abstractmethod
    def get_hosted_service(self, service_name: str) -> HostedServiceDetails:
        """Return a hosted service with its deployments.

        Raises:
            ResourceNotFoundError: If the hosted service does not exist.
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def create_hosted_service(
        self,
        service_name: str,
        label: str,
        *,
        location: str | None = None,
        affinity_group: str | None = None,
    ) -> None:
        """Create a hosted service in a location or affinity group.

        Raises:
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def get_deployment_by_slot(
        self, service_name: str, slot: DeploymentSlot
    ) -> DeploymentStatusSnapshot:
        """Return the deployment occupying a slot.

        Raises:
            ResourceNotFoundError: If the slot is empty.
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def create_or_update_deployment(
        self, service_name: str, slot: DeploymentSlot, request: DeploymentRequest
    ) -> None:
        """Create a deployment in an empty slot.

        Raises:
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def upgrade_deployment(
        self, service_name: str, slot: DeploymentSlot, request: DeploymentRequest
    ) -> None:
        """Upgrade the deployment occupying a slot in place.

        Raises:
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def get_storage_service(self, account_name: str) -> StorageServiceDetails:
        """Return a storage account and its provisioning status.

        Raises:
            ResourceNotFoundError: If the storage account does not exist.
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def create_storage_service(
        self,
        account_name: str,
        *,
        label: str,
        location: str | None = None,
        affinity_group: str | None = None,
    ) -> None:
        """Start provisioning a storage account.

        Raises:
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def get_storage_keys(self, account_name: str) -> StorageKeys:
        """Return the access keys of a storage account.

        Raises:
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def list_certificates(self, service_name: str) -> list[Certificate]:
        """Return the certificates registered on a hosted service.

        Raises:
            RemoteCallError: If the call fails.
        """

    @abstractmethod
    def add_certificate(
        self, service_name: str, pfx_data: bytes, password: str | None
    ) -> None:
        """Register a PFX certificate on a hosted service.

        Raises:
            RemoteCallError: If the call fails.
        """


class PackageUploader(ABC):
    """Abstract uploader of cloud packages to blob storage."""

    @abstractmethod
    def upload(self, package_path: Path, account_name: str, account_key: str) -> str:
        """Upload a package and return the URL it can be deployed from.

        Raises:
            RemoteCallError: If the upload fails.
        """
