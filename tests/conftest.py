"""Shared pytest fixtures for Nimbus tests.

The scripted fake remote service replays an ordered queue of responses per
operation: the Nth call of an operation gets the Nth response and the last
response repeats. Exception instances in a queue are raised instead of
returned.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import yaml

from nimbus.deploy.clients.base import PackageUploader, ServiceManagementClient
from nimbus.lib.errors import ResourceNotFoundError
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
)

DIAGNOSTICS_SETTING = "Microsoft.WindowsAzure.Plugins.Diagnostics.ConnectionString"
CACHING_SETTING = "Microsoft.WindowsAzure.Plugins.Caching.ConfigStoreConnectionString"


class ScriptedServiceManagement(ServiceManagementClient):
    """Fake management client driven by per-operation response queues.

    Unscripted lookups raise ResourceNotFoundError, unscripted mutations
    succeed, and every call is recorded in ``calls`` in order.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self._responses: dict[str, list[Any]] = {}

    def script(self, operation: str, *responses: Any) -> ScriptedServiceManagement:
        """Queue responses for an operation."""
        self._responses[operation] = list(responses)
        return self

    def operations(self) -> list[str]:
        """Return the names of the recorded calls in order."""
        return [name for name, _, _ in self.calls]

    def calls_to(self, operation: str) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
        """Return the arguments of every call to an operation."""
        return [(args, kwargs) for name, args, kwargs in self.calls if name == operation]

    def _respond(self, operation: str, default: Any, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((operation, args, kwargs))
        queue = self._responses.get(operation)
        if queue:
            response = queue.pop(0) if len(queue) > 1 else queue[0]
        else:
            response = default() if callable(default) else default
        if isinstance(response, BaseException):
            raise response
        return response

    def get_hosted_service(self, service_name: str) -> HostedServiceDetails:
        return self._respond(
            "get_hosted_service",
            lambda: ResourceNotFoundError("Hosted service", service_name),
            service_name,
        )

    def create_hosted_service(
        self,
        service_name: str,
        label: str,
        *,
        location: str | None = None,
        affinity_group: str | None = None,
    ) -> None:
        self._respond(
            "create_hosted_service",
            None,
            service_name,
            label,
            location=location,
            affinity_group=affinity_group,
        )

    def get_deployment_by_slot(
        self, service_name: str, slot: DeploymentSlot
    ) -> DeploymentStatusSnapshot:
        return self._respond(
            "get_deployment_by_slot",
            lambda: ResourceNotFoundError("Deployment", f"{service_name}/{slot.value}"),
            service_name,
            slot,
        )

    def create_or_update_deployment(
        self, service_name: str, slot: DeploymentSlot, request: DeploymentRequest
    ) -> None:
        self._respond("create_or_update_deployment", None, service_name, slot, request)

    def upgrade_deployment(
        self, service_name: str, slot: DeploymentSlot, request: DeploymentRequest
    ) -> None:
        self._respond("upgrade_deployment", None, service_name, slot, request)

    def get_storage_service(self, account_name: str) -> StorageServiceDetails:
        return self._respond(
            "get_storage_service",
            lambda: ResourceNotFoundError("Storage account", account_name),
            account_name,
        )

    def create_storage_service(
        self,
        account_name: str,
        *,
        label: str,
        location: str | None = None,
        affinity_group: str | None = None,
    ) -> None:
        self._respond(
            "create_storage_service",
            None,
            account_name,
            label=label,
            location=location,
            affinity_group=affinity_group,
        )

    def get_storage_keys(self, account_name: str) -> StorageKeys:
        return self._respond(
            "get_storage_keys",
            StorageKeys(primary="cHJpbWFyeQ==", secondary="c2Vjb25kYXJ5"),
            account_name,
        )

    def list_certificates(self, service_name: str) -> list[Certificate]:
        return self._respond("list_certificates", [], service_name)

    def add_certificate(
        self, service_name: str, pfx_data: bytes, password: str | None
    ) -> None:
        self._respond("add_certificate", None, service_name, pfx_data, password)


class RecordingUploader(PackageUploader):
    """Uploader that records uploads and returns a fixed URL."""

    def __init__(
        self,
        url: str = "https://store.blob.core.windows.net/mydeployments/pkg.cspkg",
        error: BaseException | None = None,
    ) -> None:
        self.url = url
        self.error = error
        self.uploads: list[tuple[Path, str, str]] = []

    def upload(self, package_path: Path, account_name: str, account_key: str) -> str:
        self.uploads.append((package_path, account_name, account_key))
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Isolate tests from the user's home directory and NIMBUS_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    for name in (
        "NIMBUS_SUBSCRIPTION_ID",
        "NIMBUS_MANAGEMENT_CERTIFICATE",
        "NIMBUS_LOCATION",
        "NIMBUS_AFFINITY_GROUP",
        "NIMBUS_STORAGE_ACCOUNT",
        "NIMBUS_SLOT",
        "NIMBUS_RUNTIME_MANIFEST",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def make_service(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a service root with role directories.

    By default a single web role ``WebRole1`` with a ``server.js`` entry point
    and a diagnostics connection-string setting is created.
    """

    def _make(
        name: str = "myservice",
        roles: list[dict[str, Any]] | None = None,
        cloud_roles: dict[str, Any] | None = None,
        parent: Path | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Path:
        root = (parent or tmp_path) / name
        root.mkdir(parents=True, exist_ok=True)

        if roles is None:
            roles = [{"name": "WebRole1", "type": "web", "entry_point": "server.js"}]
        if cloud_roles is None:
            cloud_roles = {
                role["name"]: {
                    "instances": 1,
                    "settings": {DIAGNOSTICS_SETTING: "UseDevelopmentStorage=true"},
                }
                for role in roles
            }

        (root / "service.yaml").write_text(
            yaml.safe_dump({"name": name, "roles": roles}, sort_keys=False),
            encoding="utf-8",
        )
        (root / "service.cloud.yaml").write_text(
            yaml.safe_dump({"roles": cloud_roles}, sort_keys=False), encoding="utf-8"
        )
        (root / "service.local.yaml").write_text(
            yaml.safe_dump({"roles": {}}), encoding="utf-8"
        )
        for role in roles:
            role_dir = root / role["name"]
            role_dir.mkdir(exist_ok=True)
            entry = role.get("entry_point") or "server.js"
            (role_dir / entry).write_text("console.log('hello');\n", encoding="utf-8")
            (role_dir / "package.json").write_text("{}\n", encoding="utf-8")
        if settings is not None:
            (root / "nimbus.yaml").write_text(
                yaml.safe_dump(settings, sort_keys=False), encoding="utf-8"
            )
        return root

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., DeploymentStatusSnapshot]:
    """Factory building deployment snapshots."""

    def _make(
        status: str = "Running",
        instances: tuple[str, ...] = ("ReadyRole",),
        name: str = "myservice",
        slot: DeploymentSlot = DeploymentSlot.PRODUCTION,
        url: str | None = "http://myservice.cloudapp.net/",
    ) -> DeploymentStatusSnapshot:
        return DeploymentStatusSnapshot(
            name=name,
            slot=slot,
            status=DeploymentStatus(status),
            role_instances=[
                RoleInstance(
                    role_name="WebRole1",
                    instance_name=f"WebRole1_IN_{index}",
                    instance_status=RoleInstanceStatus(instance_status),
                )
                for index, instance_status in enumerate(instances)
            ],
            url=url,
        )

    return _make


@pytest.fixture
def scripted_client() -> ScriptedServiceManagement:
    """Scripted fake management client."""
    return ScriptedServiceManagement()


@pytest.fixture
def recording_uploader() -> RecordingUploader:
    """Uploader recording its calls."""
    return RecordingUploader()
