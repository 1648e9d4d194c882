"""Remote state prober.

Before publishing, the orchestrator needs to know what already exists
remotely: the hosted service, the deployment in the target slot and the
storage account. A missing resource is an answer, not a failure.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from nimbus.deploy.clients.base import ServiceManagementClient
from nimbus.lib.errors import ProbeError, RemoteCallError, ResourceNotFoundError
from nimbus.lib.logging_config import get_logger
from nimbus.models.deployment import (
    DeploymentSlot,
    DeploymentStatusSnapshot,
    HostedServiceDetails,
    StorageServiceDetails,
    StorageStatus,
)

logger = get_logger(__name__)

T = TypeVar("T")


class StorageAction(str, Enum):
    """What publish has to do about the storage account."""

    CREATE = "create"
    WAIT = "wait"
    READY = "ready"


class DeploymentAction(str, Enum):
    """What publish has to do about the hosted service and slot."""

    CREATE_SERVICE = "create_service"
    CREATE_DEPLOYMENT = "create_deployment"
    UPGRADE = "upgrade"


@dataclass(frozen=True)
class RemoteServiceState:
    """Snapshot of the remote resources a publish depends on.

    Attributes:
        service_name: Hosted service name that was probed
        slot: Slot that was probed
        storage_account: Storage account name that was probed
        hosted_service: Hosted service details, None if absent
        deployment: Deployment in the slot, None if the slot is empty
        storage: Storage account details, None if absent
    """

    service_name: str
    slot: DeploymentSlot
    storage_account: str
    hosted_service: HostedServiceDetails | None
    deployment: DeploymentStatusSnapshot | None
    storage: StorageServiceDetails | None

    @property
    def storage_action(self) -> StorageAction:
        """Classify the storage account state."""
        if self.storage is None:
            return StorageAction.CREATE
        # A missing status means the provider has nothing pending
        if self.storage.status is None or self.storage.status == StorageStatus.CREATED:
            return StorageAction.READY
        return StorageAction.WAIT

    @property
    def deployment_action(self) -> DeploymentAction:
        """Classify the hosted service and slot state.

        An absent hosted service wins over any slot answer.
        """
        if self.hosted_service is None:
            return DeploymentAction.CREATE_SERVICE
        if self.deployment is None:
            return DeploymentAction.CREATE_DEPLOYMENT
        return DeploymentAction.UPGRADE


class RemoteStateProber:
    """Queries remote state with existence-tolerant lookups."""

    def __init__(self, client: ServiceManagementClient) -> None:
        """Initialize the prober with a management client."""
        self.client = client

    def _lookup(self, operation: str, call: Callable[[], T]) -> T | None:
        try:
            return call()
        except ResourceNotFoundError as exc:
            logger.debug(f"{operation}: {exc}")
            return None
        except RemoteCallError as exc:
            raise ProbeError(operation, exc) from exc

    def probe(
        self, service_name: str, slot: DeploymentSlot, storage_account: str
    ) -> RemoteServiceState:
        """Probe the hosted service, the slot and the storage account.

        Raises:
            ProbeError: If a lookup fails for any reason other than not-found
        """
        hosted = self._lookup(
            "probe_hosted_service", lambda: self.client.get_hosted_service(service_name)
        )

        deployment = self._lookup(
            "probe_deployment",
            lambda: self.client.get_deployment_by_slot(service_name, slot),
        )
        if deployment is None and hosted is not None:
            deployment = hosted.deployment_in(slot)

        storage = self._lookup(
            "probe_storage", lambda: self.client.get_storage_service(storage_account)
        )

        state = RemoteServiceState(
            service_name=service_name,
            slot=slot,
            storage_account=storage_account,
            hosted_service=hosted,
            deployment=deployment,
            storage=storage,
        )
        logger.info(
            f"Remote state of {service_name}: "
            f"hosted service {'present' if hosted else 'absent'}, "
            f"{slot.value} slot {'occupied' if deployment else 'empty'}, "
            f"storage account {storage_account} {state.storage_action.value}"
        )
        return state
