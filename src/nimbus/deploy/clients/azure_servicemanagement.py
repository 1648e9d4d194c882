"""Azure Service Management client implementation."""

from __future__ import annotations

import base64
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from nimbus.deploy.clients.base import ServiceManagementClient
from nimbus.lib.errors import (
    AuthorizationError,
    CloudSDKNotInstalledError,
    RemoteCallError,
    ResourceNotFoundError,
)
from nimbus.lib.logging_config import get_logger
from nimbus.models.deployment import (
    Certificate,
    DeploymentRequest,
    DeploymentSlot,
    DeploymentStatus,
    DeploymentStatusSnapshot,
    HostedServiceDetails,
    RoleInstance,
    RoleInstanceStatus,
    StorageKeys,
    StorageServiceDetails,
    StorageStatus,
    parse_status,
)

if TYPE_CHECKING:
    from azure.servicemanagement import ServiceManagementService

logger = get_logger(__name__)

T = TypeVar("T")


def _b64(data: str | bytes) -> str:
    raw = data.encode("utf-8") if isinstance(data, str) else data
    return base64.b64encode(raw).decode("ascii")


class AzureServiceManagementClient(ServiceManagementClient):
    """Manage hosted services and storage accounts via Azure Service Management."""

    def __init__(self, subscription_id: str, management_certificate: str) -> None:
        """Initialize the client.

        Args:
            subscription_id: Subscription that owns the resources
            management_certificate: Path to the PEM management certificate

        Raises:
            CloudSDKNotInstalledError: If the Azure SDK dependencies are missing
        """
        try:
            from azure.common import AzureHttpError, AzureMissingResourceHttpError
            from azure.servicemanagement import ServiceManagementService
        except ImportError as exc:
            raise CloudSDKNotInstalledError(
                provider="azure", sdk_name="azure-servicemanagement-legacy"
            ) from exc

        self._http_error: type[Exception] = AzureHttpError
        self._missing_error: type[Exception] = AzureMissingResourceHttpError
        self._sms: ServiceManagementService = ServiceManagementService(
            subscription_id, management_certificate
        )

    def _call(
        self,
        func: Callable[..., T],
        *args: Any,
        resource: tuple[str, str] | None = None,
        **kwargs: Any,
    ) -> T:
        """Invoke an SDK call and translate provider errors.

        Args:
            func: SDK method to call
            resource: ``(type, name)`` of the looked-up resource; when set,
                HTTP 404 raises ResourceNotFoundError
        """
        try:
            return func(*args, **kwargs)
        except self._missing_error as exc:
            if resource is not None:
                raise ResourceNotFoundError(*resource) from exc
            raise RemoteCallError(
                str(exc), status_code=404, operation_id=_request_id(exc)
            ) from exc
        except self._http_error as exc:
            status_code = getattr(exc, "status_code", None)
            if status_code == 403:
                raise AuthorizationError(str(exc), _request_id(exc)) from exc
            raise RemoteCallError(
                str(exc), status_code=status_code, operation_id=_request_id(exc)
            ) from exc

    def get_hosted_service(self, service_name: str) -> HostedServiceDetails:
        """Return a hosted service with its deployments."""
        result = self._call(
            self._sms.get_hosted_service_properties,
            service_name,
            embed_detail=True,
            resource=("Hosted service", service_name),
        )
        properties = getattr(result, "hosted_service_properties", None)
        deployments = [
            _snapshot(deployment)
            for deployment in getattr(result, "deployments", None) or []
        ]
        return HostedServiceDetails(
            service_name=getattr(result, "service_name", None) or service_name,
            label=getattr(properties, "label", None),
            location=getattr(properties, "location", None) or None,
            affinity_group=getattr(properties, "affinity_group", None) or None,
            deployments=deployments,
        )

    def create_hosted_service(
        self,
        service_name: str,
        label: str,
        *,
        location: str | None = None,
        affinity_group: str | None = None,
    ) -> None:
        """Create a hosted service."""
        logger.debug(f"create_hosted_service {service_name}")
        self._call(
            self._sms.create_hosted_service,
            service_name,
            label,
            description=label,
            location=None if affinity_group else location,
            affinity_group=affinity_group,
        )

    def get_deployment_by_slot(
        self, service_name: str, slot: DeploymentSlot
    ) -> DeploymentStatusSnapshot:
        """Return the deployment occupying a slot."""
        result = self._call(
            self._sms.get_deployment_by_slot,
            service_name,
            slot.value.lower(),
            resource=("Deployment", f"{service_name}/{slot.value}"),
        )
        return _snapshot(result, default_slot=slot)

    def create_or_update_deployment(
        self, service_name: str, slot: DeploymentSlot, request: DeploymentRequest
    ) -> None:
        """Create a deployment in a slot."""
        logger.debug(f"create_deployment {service_name}/{slot.value}")
        self._call(
            self._sms.create_deployment,
            service_name,
            slot.value.lower(),
            request.deployment_name,
            request.package_url,
            request.label,
            _b64(request.configuration),
            start_deployment=request.start_deployment,
            treat_warnings_as_error=request.treat_warnings_as_error,
        )

    def upgrade_deployment(
        self, service_name: str, slot: DeploymentSlot, request: DeploymentRequest
    ) -> None:
        """Upgrade a deployment in place."""
        logger.debug(f"upgrade_deployment {service_name}/{request.deployment_name}")
        self._call(
            self._sms.upgrade_deployment,
            service_name,
            request.deployment_name,
            request.upgrade_mode,
            request.package_url,
            _b64(request.configuration),
            request.label,
            request.force,
        )

    def get_storage_service(self, account_name: str) -> StorageServiceDetails:
        """Return a storage account and its status."""
        result = self._call(
            self._sms.get_storage_account_properties,
            account_name,
            resource=("Storage account", account_name),
        )
        properties = getattr(result, "storage_service_properties", None)
        return StorageServiceDetails(
            service_name=getattr(result, "service_name", None) or account_name,
            status=parse_status(StorageStatus, getattr(properties, "status", None)),
            location=getattr(properties, "location", None) or None,
        )

    def create_storage_service(
        self,
        account_name: str,
        *,
        label: str,
        location: str | None = None,
        affinity_group: str | None = None,
    ) -> None:
        """Start provisioning a storage account."""
        logger.debug(f"create_storage_account {account_name}")
        self._call(
            self._sms.create_storage_account,
            account_name,
            label,
            label,
            affinity_group=affinity_group,
            location=None if affinity_group else location,
        )

    def get_storage_keys(self, account_name: str) -> StorageKeys:
        """Return storage account keys."""
        result = self._call(self._sms.get_storage_account_keys, account_name)
        keys = result.storage_service_keys
        return StorageKeys(primary=keys.primary, secondary=keys.secondary or None)

    def list_certificates(self, service_name: str) -> list[Certificate]:
        """Return certificates of a hosted service."""
        result = self._call(self._sms.list_service_certificates, service_name)
        return [
            Certificate(
                thumbprint=cert.thumbprint,
                thumbprint_algorithm=getattr(cert, "thumbprint_algorithm", None)
                or "sha1",
                url=getattr(cert, "certificate_url", None),
            )
            for cert in result
        ]

    def add_certificate(
        self, service_name: str, pfx_data: bytes, password: str | None
    ) -> None:
        """Register a PFX certificate."""
        logger.debug(f"add_service_certificate {service_name}")
        self._call(
            self._sms.add_service_certificate,
            service_name,
            _b64(pfx_data),
            "pfx",
            password or "",
        )


def _request_id(exc: Exception) -> str | None:
    return getattr(exc, "request_id", None)


def _snapshot(
    deployment: Any, default_slot: DeploymentSlot | None = None
) -> DeploymentStatusSnapshot:
    slot_value = getattr(deployment, "deployment_slot", None)
    slot = DeploymentSlot.parse(slot_value) if slot_value else default_slot
    instances = [
        RoleInstance(
            role_name=getattr(instance, "role_name", None) or "",
            instance_name=instance.instance_name,
            instance_status=parse_status(RoleInstanceStatus, instance.instance_status),
        )
        for instance in getattr(deployment, "role_instance_list", None) or []
    ]
    return DeploymentStatusSnapshot(
        name=deployment.name,
        slot=slot or DeploymentSlot.PRODUCTION,
        status=parse_status(DeploymentStatus, deployment.status),
        role_instances=instances,
        url=getattr(deployment, "url", None) or None,
        label=getattr(deployment, "label", None) or None,
    )
