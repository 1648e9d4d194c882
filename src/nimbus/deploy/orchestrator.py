"""Publish orchestration for Nimbus services.

Publishing a service runs these steps in order:

1. Apply a service name override and persist the descriptor
2. Patch role runtimes from the runtime manifest
3. Build the cloud package
4. Probe the hosted service, the target slot and the storage account
5. Create the storage account and/or wait for it to be provisioned
6. Write storage connection strings into the cloud configuration
7. Upload the package (unless skipped)
8. Create the hosted service when absent and register certificates
9. Create the deployment in an empty slot, or upgrade the existing one
10. Wait for the deployment to come up and record the result

The create-or-upgrade branch is decided once from the initial probe.
Mutating calls are never retried.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from nimbus.config.loader import ServiceLoader
from nimbus.config.validator import validation_message
from nimbus.deploy.clients.base import PackageUploader, ServiceManagementClient
from nimbus.deploy.naming import (
    connection_string,
    inject_connection_strings,
    storage_account_name,
)
from nimbus.deploy.packager import PackageArtifact, PackageBuilder
from nimbus.deploy.prober import (
    DeploymentAction,
    RemoteServiceState,
    RemoteStateProber,
    StorageAction,
)
from nimbus.deploy.runtime import apply_runtime_manifest, load_runtime_manifest
from nimbus.deploy.state import update_deployment_settings
from nimbus.deploy.templates import render_service_configuration
from nimbus.deploy.waiter import deployment_ready, storage_ready, wait_until
from nimbus.lib.errors import (
    ConfigError,
    DeploymentError,
    MutationError,
    RemoteCallError,
    RemoteReadError,
)
from nimbus.lib.logging_config import get_logger
from nimbus.models.deployment import (
    DeploymentRequest,
    DeploymentSlot,
    DeploymentStatusSnapshot,
    PublishSettings,
    StorageKeys,
)
from nimbus.models.deployment_state import DeploymentSettings
from nimbus.models.runtime import RuntimeManifest
from nimbus.models.service import ServiceConfiguration, ServiceDescriptor, ServicePaths

logger = get_logger(__name__)

T = TypeVar("T")


class PublishOrchestrator:
    """Drives a publish from a local service root to a running deployment.

    Example:
        >>> orchestrator = PublishOrchestrator(client, settings, uploader)
        >>> snapshot = orchestrator.publish("./my-service")
        >>> snapshot.status
        <DeploymentStatus.RUNNING: 'Running'>
    """

    def __init__(
        self,
        client: ServiceManagementClient,
        settings: PublishSettings,
        uploader: PackageUploader | None = None,
        *,
        loader: ServiceLoader | None = None,
        builder: PackageBuilder | None = None,
        manifest_loader: Callable[[str], RuntimeManifest] = load_runtime_manifest,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Remote service management client
            settings: Resolved publish settings
            uploader: Package uploader (only required when uploading)
            loader: Service file loader
            builder: Package builder (defaults to one using settings.exclude_patterns)
            manifest_loader: Loads a runtime manifest from a file or URL
            sleep: Sleep function used between polls
            clock: Monotonic clock used for wait timeouts
            cancel_event: Set from another thread to abandon waits
        """
        self.client = client
        self.settings = settings
        self.uploader = uploader
        self.loader = loader or ServiceLoader()
        self.builder = builder or PackageBuilder(settings.exclude_patterns)
        self.prober = RemoteStateProber(client)
        self.manifest_loader = manifest_loader
        self.sleep = sleep
        self.clock = clock
        self.cancel_event = cancel_event

    def publish(
        self,
        service_path: str | Path,
        *,
        service_name: str | None = None,
        slot: DeploymentSlot | str | None = None,
        skip_upload: bool = False,
        runtime_manifest: str | None = None,
    ) -> DeploymentStatusSnapshot:
        """Publish a service and return its deployment once it is up.

        Args:
            service_path: Service root directory
            service_name: New service name, persisted before anything else
            slot: Target slot (settings.slot if unset)
            skip_upload: Deploy from the local package URI instead of uploading
            runtime_manifest: Runtime manifest file or URL (overrides settings)

        Returns:
            The deployment snapshot accepted by the completion waiter

        Raises:
            ConfigError: If service files or settings are invalid
            PackagingError: If the package cannot be built
            ProbeError: If remote state cannot be determined before any change
            RemoteReadError: If a remote read after the probe fails
            MutationError: If a create, upgrade or upload call fails
            WaitTimeoutError: If a remote resource does not become ready in time
            OperationCancelledError: If the cancel event is set during a wait
        """
        try:
            target_slot = DeploymentSlot.parse(slot) if slot else self.settings.slot
        except ValueError as e:
            raise ConfigError("slot", str(e)) from e

        paths = ServicePaths.for_root(service_path)
        descriptor = self.loader.load_descriptor(paths)

        if service_name and service_name != descriptor.name:
            descriptor = self._rename(paths, descriptor, service_name)

        manifest_source = runtime_manifest or self.settings.runtime_manifest
        if manifest_source:
            self._patch_runtimes(paths, descriptor, manifest_source)

        artifact = self.builder.build(descriptor, paths)
        configuration = self.loader.load_configuration(paths.cloud_configuration)

        account_name = self.settings.storage_account or storage_account_name(
            descriptor.name
        )
        label = self.settings.label or descriptor.name

        state = self.prober.probe(descriptor.name, target_slot, account_name)

        self._ensure_storage(state, label)
        keys = self._apply_connection_strings(paths, configuration, account_name)
        package_url = self._package_url(artifact, account_name, keys, skip_upload)

        if state.deployment_action == DeploymentAction.CREATE_SERVICE:
            logger.info(f"Creating hosted service {descriptor.name}")
            self._mutate(
                "create_hosted_service",
                self.client.create_hosted_service,
                descriptor.name,
                label,
                location=self.settings.location,
                affinity_group=self.settings.affinity_group,
            )

        self._ensure_certificates(paths, descriptor.name, configuration)

        request = DeploymentRequest(
            service_name=descriptor.name,
            slot=target_slot,
            deployment_name=(
                state.deployment.name
                if state.deployment is not None and state.deployment.name
                else descriptor.name
            ),
            package_url=package_url,
            configuration=render_service_configuration(descriptor, configuration),
            label=label,
        )

        if state.deployment_action == DeploymentAction.UPGRADE:
            logger.info(
                f"Upgrading deployment {request.deployment_name} "
                f"in {target_slot.value} slot"
            )
            self._mutate(
                "upgrade_deployment",
                self.client.upgrade_deployment,
                descriptor.name,
                target_slot,
                request,
            )
        else:
            logger.info(f"Creating deployment in {target_slot.value} slot")
            self._mutate(
                "create_deployment",
                self.client.create_or_update_deployment,
                descriptor.name,
                target_slot,
                request,
            )

        snapshot = self._wait_for_deployment(descriptor.name, target_slot)
        logger.info(
            f"Deployment {snapshot.name} is {snapshot.status.value}"
            + (f" at {snapshot.url}" if snapshot.url else "")
        )

        update_deployment_settings(
            paths.deployment_settings,
            DeploymentSettings(
                subscription_id=self.settings.subscription_id,
                service_name=descriptor.name,
                slot=target_slot,
                location=self.settings.location,
                affinity_group=self.settings.affinity_group,
                storage_account=account_name,
                deployment_name=snapshot.name,
                label=label,
                package_url=package_url,
                status=snapshot.status.value,
                url=snapshot.url,
            ),
        )
        return snapshot

    def _mutate(
        self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        try:
            return func(*args, **kwargs)
        except RemoteCallError as exc:
            raise MutationError(operation, exc) from exc

    def _read(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except RemoteCallError as exc:
            raise RemoteReadError(operation, exc) from exc

    def _rename(
        self, paths: ServicePaths, descriptor: ServiceDescriptor, service_name: str
    ) -> ServiceDescriptor:
        try:
            renamed = ServiceDescriptor(
                **{**descriptor.model_dump(), "name": service_name}
            )
        except PydanticValidationError as e:
            raise ConfigError("name", validation_message(e, "service name")) from e
        logger.info(f"Renaming service {descriptor.name} to {service_name}")
        self.loader.save_descriptor(paths, renamed)
        return renamed

    def _patch_runtimes(
        self, paths: ServicePaths, descriptor: ServiceDescriptor, source: str
    ) -> None:
        manifest = self.manifest_loader(source)
        changed = apply_runtime_manifest(descriptor, manifest)
        if changed:
            logger.info(f"Updated runtime of role(s): {', '.join(changed)}")
            self.loader.save_descriptor(paths, descriptor)

    def _ensure_storage(self, state: RemoteServiceState, label: str) -> None:
        action = state.storage_action
        if action == StorageAction.READY:
            return

        if action == StorageAction.CREATE:
            logger.info(f"Creating storage account {state.storage_account}")
            self._mutate(
                "create_storage",
                self.client.create_storage_service,
                state.storage_account,
                label=label,
                location=self.settings.location,
                affinity_group=self.settings.affinity_group,
            )

        logger.info(f"Waiting for storage account {state.storage_account}")
        self._wait(
            "wait_storage",
            lambda: self.client.get_storage_service(state.storage_account),
            storage_ready,
        )

    def _apply_connection_strings(
        self,
        paths: ServicePaths,
        configuration: ServiceConfiguration,
        account_name: str,
    ) -> StorageKeys:
        keys = self._read("storage_keys", self.client.get_storage_keys, account_name)
        changed = inject_connection_strings(
            configuration, connection_string(account_name, keys)
        )
        if changed:
            logger.debug(f"Updated storage connection strings of {', '.join(changed)}")
            self.loader.save_configuration(paths.cloud_configuration, configuration)
        return keys

    def _package_url(
        self,
        artifact: PackageArtifact,
        account_name: str,
        keys: StorageKeys,
        skip_upload: bool,
    ) -> str:
        if skip_upload:
            logger.info("Skipping package upload")
            return artifact.path.resolve().as_uri()
        if self.uploader is None:
            raise DeploymentError(
                operation="upload", message="No package uploader configured"
            )
        return self._mutate(
            "upload", self.uploader.upload, artifact.path, account_name, keys.primary
        )

    def _ensure_certificates(
        self,
        paths: ServicePaths,
        service_name: str,
        configuration: ServiceConfiguration,
    ) -> None:
        declared = configuration.certificates()
        if not declared:
            return

        existing = {
            cert.thumbprint.upper()
            for cert in self._read(
                "list_certificates", self.client.list_certificates, service_name
            )
        }
        for cert in declared:
            if cert.thumbprint.upper() in existing:
                continue
            if not cert.pfx_path:
                logger.warning(
                    f"Certificate {cert.name} ({cert.thumbprint}) is not registered "
                    f"on {service_name} and has no pfx_path to upload"
                )
                continue

            pfx_path = Path(cert.pfx_path)
            if not pfx_path.is_absolute():
                pfx_path = paths.root / pfx_path
            try:
                pfx_data = pfx_path.read_bytes()
            except OSError as exc:
                raise DeploymentError(
                    operation="add_certificate",
                    message=f"Cannot read certificate {cert.name} at {pfx_path}: {exc}",
                ) from exc

            logger.info(f"Adding certificate {cert.name} to {service_name}")
            self._mutate(
                "add_certificate",
                self.client.add_certificate,
                service_name,
                pfx_data,
                cert.password,
            )

    def _wait(
        self,
        operation: str,
        poll: Callable[[], T],
        is_terminal: Callable[[T], bool],
    ) -> T:
        def _poll() -> T:
            try:
                return poll()
            except RemoteCallError as exc:
                raise RemoteReadError(operation, exc) from exc

        return wait_until(
            _poll,
            is_terminal,
            policy=self.settings.wait,
            sleep=self.sleep,
            clock=self.clock,
            cancel_event=self.cancel_event,
            description=operation,
        )

    def _wait_for_deployment(
        self, service_name: str, slot: DeploymentSlot
    ) -> DeploymentStatusSnapshot:
        logger.info(f"Waiting for deployment in {slot.value} slot to start")
        return self._wait(
            "wait_deployment",
            lambda: self.client.get_deployment_by_slot(service_name, slot),
            deployment_ready(self.settings.require_running),
        )
