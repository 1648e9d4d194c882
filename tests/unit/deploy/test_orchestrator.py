"""Unit tests for the publish orchestrator.

Tests cover:
- The create/wait/upgrade call sequences for each remote state
- Service name overrides and derived storage account names
- Connection string injection and package upload
- Certificate registration
- Error wrapping and wait failures
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from nimbus.deploy.orchestrator import PublishOrchestrator
from nimbus.deploy.state import load_deployment_settings
from nimbus.lib.errors import (
    ConfigError,
    DeploymentError,
    MutationError,
    ProbeError,
    RemoteCallError,
    RemoteReadError,
    ResourceNotFoundError,
    WaitTimeoutError,
)
from nimbus.models.deployment import (
    Certificate,
    DeploymentRequest,
    DeploymentSlot,
    DeploymentStatus,
    DeploymentStatusSnapshot,
    HostedServiceDetails,
    PublishSettings,
    StorageServiceDetails,
    StorageStatus,
    WaitPolicy,
)
from nimbus.models.service import ServicePaths

DIAGNOSTICS_SETTING = "Microsoft.WindowsAzure.Plugins.Diagnostics.ConnectionString"

MUTATIONS = (
    "create_storage_service",
    "create_hosted_service",
    "create_or_update_deployment",
    "upgrade_deployment",
    "add_certificate",
)


def _settings(**overrides: Any) -> PublishSettings:
    values: dict[str, Any] = {
        "subscription_id": "00000000-0000-0000-0000-000000000000",
        "management_certificate": "management.pem",
        "wait": WaitPolicy(interval=0, max_attempts=5),
    }
    values.update(overrides)
    return PublishSettings(**values)


def _orchestrator(
    client: Any, uploader: Any = None, **settings: Any
) -> PublishOrchestrator:
    return PublishOrchestrator(
        client, _settings(**settings), uploader, sleep=lambda seconds: None
    )


def _not_found(name: str = "myservice") -> ResourceNotFoundError:
    return ResourceNotFoundError("Resource", name)


def _storage(status: StorageStatus | None) -> StorageServiceDetails:
    return StorageServiceDetails(service_name="myservice", status=status)


def _mutations(client: Any) -> list[str]:
    return [name for name in client.operations() if name in MUTATIONS]


def _request(client: Any, operation: str) -> DeploymentRequest:
    (args, _), = client.calls_to(operation)
    return args[2]


def _script_new_service(
    client: Any, snapshot: DeploymentStatusSnapshot | None = None
) -> None:
    """Script an absent storage account that comes up, and an empty slot."""
    client.script("get_storage_service", _not_found(), _storage(StorageStatus.CREATED))
    if snapshot is not None:
        client.script("get_deployment_by_slot", _not_found(), snapshot)


class TestRemoteStateTransitions:
    """Tests for the call sequence issued from each probed state."""

    @pytest.mark.parametrize(
        ("storage_responses", "expected_mutations", "storage_polls"),
        [
            (
                (_not_found(), _storage(StorageStatus.CREATED)),
                ["create_storage_service", "upgrade_deployment"],
                2,
            ),
            (
                (_storage(StorageStatus.CREATING), _storage(StorageStatus.CREATED)),
                ["upgrade_deployment"],
                2,
            ),
            ((_storage(StorageStatus.CREATED),), ["upgrade_deployment"], 1),
        ],
        ids=["storage-absent", "storage-creating", "storage-created"],
    )
    def test_storage_states(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
        storage_responses: tuple[Any, ...],
        expected_mutations: list[str],
        storage_polls: int,
    ) -> None:
        """Test storage is created only when absent and awaited until Created."""
        root = make_service()
        scripted_client.script(
            "get_hosted_service", HostedServiceDetails(service_name="myservice")
        )
        scripted_client.script("get_deployment_by_slot", make_snapshot())
        scripted_client.script("get_storage_service", *storage_responses)

        _orchestrator(scripted_client, recording_uploader).publish(root)

        assert _mutations(scripted_client) == expected_mutations
        assert len(scripted_client.calls_to("get_storage_service")) == storage_polls

    @pytest.mark.parametrize(
        ("hosted", "slot_occupied", "expected_mutations"),
        [
            (False, False, ["create_hosted_service", "create_or_update_deployment"]),
            (True, False, ["create_or_update_deployment"]),
            (True, True, ["upgrade_deployment"]),
        ],
        ids=["hosted-absent", "slot-empty", "slot-occupied"],
    )
    def test_deployment_states(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
        hosted: bool,
        slot_occupied: bool,
        expected_mutations: list[str],
    ) -> None:
        """Test the hosted service and slot state picks exactly one mutation path."""
        root = make_service()
        if hosted:
            scripted_client.script(
                "get_hosted_service", HostedServiceDetails(service_name="myservice")
            )
        if slot_occupied:
            scripted_client.script("get_deployment_by_slot", make_snapshot())
        else:
            scripted_client.script(
                "get_deployment_by_slot", _not_found(), make_snapshot()
            )
        scripted_client.script(
            "get_storage_service", _storage(StorageStatus.CREATED)
        )

        _orchestrator(scripted_client, recording_uploader).publish(root)

        mutations = _mutations(scripted_client)
        assert mutations == expected_mutations
        assert (
            mutations.count("create_or_update_deployment")
            + mutations.count("upgrade_deployment")
            == 1
        )

    def test_new_two_role_service(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a first publish creates storage, service and deployment in order."""
        root = make_service(
            roles=[
                {"name": "WebRole1", "type": "web", "entry_point": "server.js"},
                {"name": "WorkerRole1", "type": "worker", "entry_point": "server.js"},
            ]
        )
        scripted_client.script(
            "get_storage_service",
            _not_found(),
            _storage(StorageStatus.CREATING),
            _storage(StorageStatus.CREATED),
        )
        scripted_client.script(
            "get_deployment_by_slot",
            _not_found(),
            make_snapshot(status="Deploying", instances=("Initializing", "Initializing")),
            make_snapshot(status="Starting", instances=("ReadyRole", "ReadyRole")),
        )

        snapshot = _orchestrator(scripted_client, recording_uploader).publish(root)

        assert scripted_client.operations() == [
            "get_hosted_service",
            "get_deployment_by_slot",
            "get_storage_service",
            "create_storage_service",
            "get_storage_service",
            "get_storage_service",
            "get_storage_keys",
            "create_hosted_service",
            "create_or_update_deployment",
            "get_deployment_by_slot",
            "get_deployment_by_slot",
        ]
        assert snapshot.status == DeploymentStatus.STARTING
        assert snapshot.all_instances_ready()
        assert len(recording_uploader.uploads) == 1

        request = _request(scripted_client, "create_or_update_deployment")
        assert request.deployment_name == "myservice"
        assert request.package_url == recording_uploader.url
        assert '<Role name="WebRole1">' in request.configuration
        assert '<Role name="WorkerRole1">' in request.configuration

    def test_existing_production_deployment_is_upgraded(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a deployment listed by the hosted service is upgraded in place."""
        root = make_service()
        scripted_client.script(
            "get_hosted_service",
            HostedServiceDetails(
                service_name="myservice", deployments=[make_snapshot(name="")]
            ),
        )
        scripted_client.script(
            "get_deployment_by_slot", _not_found(), make_snapshot()
        )
        scripted_client.script("get_storage_service", _storage(None))

        _orchestrator(scripted_client, recording_uploader).publish(root)

        assert scripted_client.operations() == [
            "get_hosted_service",
            "get_deployment_by_slot",
            "get_storage_service",
            "get_storage_keys",
            "upgrade_deployment",
            "get_deployment_by_slot",
        ]
        request = _request(scripted_client, "upgrade_deployment")
        assert request.deployment_name == "myservice"
        assert request.upgrade_mode == "Auto"

    def test_upgrade_keeps_remote_deployment_name(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test an upgrade targets the deployment name reported by the provider."""
        root = make_service()
        scripted_client.script(
            "get_hosted_service", HostedServiceDetails(service_name="myservice")
        )
        scripted_client.script(
            "get_deployment_by_slot", make_snapshot(name="deploy-2024")
        )
        scripted_client.script("get_storage_service", _storage(StorageStatus.CREATED))

        _orchestrator(scripted_client, recording_uploader).publish(root)

        assert _request(scripted_client, "upgrade_deployment").deployment_name == (
            "deploy-2024"
        )


class TestPublishInputs:
    """Tests for names, slots, settings and local file updates."""

    def test_service_name_override(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test the new name is persisted and used in every remote call."""
        root = make_service()
        _script_new_service(scripted_client, make_snapshot(name="TEST_SERVICE_NAME"))

        _orchestrator(scripted_client, recording_uploader).publish(
            root, service_name="TEST_SERVICE_NAME"
        )

        saved = yaml.safe_load((root / "service.yaml").read_text())
        assert saved["name"] == "TEST_SERVICE_NAME"

        storage_ops = {
            "get_storage_service",
            "create_storage_service",
            "get_storage_keys",
        }
        for name, args, _ in scripted_client.calls:
            expected = (
                "testx5fservicex5fname" if name in storage_ops else "TEST_SERVICE_NAME"
            )
            assert args[0] == expected
            assert "myservice" not in repr(args)
        assert recording_uploader.uploads[0][1] == "testx5fservicex5fname"

    def test_invalid_service_name_override(
        self, make_service: Callable[..., Path], scripted_client: Any
    ) -> None:
        """Test an invalid new name fails before any remote call."""
        root = make_service()

        with pytest.raises(ConfigError) as exc_info:
            _orchestrator(scripted_client).publish(root, service_name="bad name!")

        assert exc_info.value.field == "name"
        assert scripted_client.calls == []
        assert yaml.safe_load((root / "service.yaml").read_text())["name"] == (
            "myservice"
        )

    def test_slot_argument(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a slot argument is parsed case-insensitively and used throughout."""
        root = make_service()
        scripted_client.script(
            "get_hosted_service", HostedServiceDetails(service_name="myservice")
        )
        scripted_client.script(
            "get_deployment_by_slot",
            _not_found(),
            make_snapshot(slot=DeploymentSlot.STAGING),
        )
        scripted_client.script("get_storage_service", _storage(StorageStatus.CREATED))

        snapshot = _orchestrator(scripted_client, recording_uploader).publish(
            root, slot="staging"
        )

        assert snapshot.slot == DeploymentSlot.STAGING
        for args, _ in scripted_client.calls_to("get_deployment_by_slot"):
            assert args[1] == DeploymentSlot.STAGING
        assert _request(scripted_client, "create_or_update_deployment").slot == (
            DeploymentSlot.STAGING
        )

    def test_invalid_slot(
        self, make_service: Callable[..., Path], scripted_client: Any
    ) -> None:
        """Test an unknown slot is a configuration error."""
        root = make_service()

        with pytest.raises(ConfigError) as exc_info:
            _orchestrator(scripted_client).publish(root, slot="blue")

        assert exc_info.value.field == "slot"
        assert scripted_client.calls == []

    def test_settings_storage_account_and_label(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test explicit storage account, label and affinity group settings."""
        root = make_service()
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(
            scripted_client,
            recording_uploader,
            storage_account="sharedstore",
            label="Release 1",
            affinity_group="my-group",
        ).publish(root)

        (args, kwargs), = scripted_client.calls_to("create_storage_service")
        assert args == ("sharedstore",)
        assert kwargs == {
            "label": "Release 1",
            "location": "East US",
            "affinity_group": "my-group",
        }
        (args, kwargs), = scripted_client.calls_to("create_hosted_service")
        assert args == ("myservice", "Release 1")
        assert kwargs["affinity_group"] == "my-group"
        assert _request(scripted_client, "create_or_update_deployment").label == (
            "Release 1"
        )

    def test_connection_strings_are_injected(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test storage keys end up in the cloud configuration and the request."""
        root = make_service()
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client, recording_uploader).publish(root)

        expected = (
            "DefaultEndpointsProtocol=https;AccountName=myservice;"
            "AccountKey=cHJpbWFyeQ=="
        )
        cloud = yaml.safe_load((root / "service.cloud.yaml").read_text())
        assert cloud["roles"]["WebRole1"]["settings"][DIAGNOSTICS_SETTING] == expected
        request = _request(scripted_client, "create_or_update_deployment")
        assert expected in request.configuration
        assert recording_uploader.uploads[0][2] == "cHJpbWFyeQ=="

    def test_skip_upload_uses_local_package(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
    ) -> None:
        """Test skipping the upload still runs every remote step."""
        root = make_service()
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client).publish(root, skip_upload=True)

        request = _request(scripted_client, "create_or_update_deployment")
        assert request.package_url.startswith("file://")
        assert request.package_url.endswith("cloud_package.cspkg")
        assert _mutations(scripted_client) == [
            "create_storage_service",
            "create_hosted_service",
            "create_or_update_deployment",
        ]

    def test_upload_requires_uploader(
        self, make_service: Callable[..., Path], scripted_client: Any
    ) -> None:
        """Test publishing without an uploader fails unless the upload is skipped."""
        root = make_service()
        scripted_client.script("get_storage_service", _storage(StorageStatus.CREATED))

        with pytest.raises(DeploymentError) as exc_info:
            _orchestrator(scripted_client).publish(root)

        assert exc_info.value.operation == "upload"
        assert "create_hosted_service" not in scripted_client.operations()

    def test_runtime_manifest_is_applied(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
        tmp_path: Path,
    ) -> None:
        """Test role runtimes are patched and persisted before packaging."""
        root = make_service()
        manifest = tmp_path / "runtimes.yaml"
        manifest.write_text(
            yaml.safe_dump(
                {
                    "base_uri": "https://runtimes.example.com/",
                    "packages": [
                        {
                            "runtime": "node",
                            "version": "0.8.2",
                            "path": "node/0.8.2.exe",
                            "default": True,
                        },
                        {
                            "runtime": "iisnode",
                            "version": "0.1.21",
                            "path": "iisnode/0.1.21.exe",
                            "default": True,
                        },
                    ],
                }
            )
        )
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client, recording_uploader).publish(
            root, runtime_manifest=str(manifest)
        )

        saved = yaml.safe_load((root / "service.yaml").read_text())
        assert saved["roles"][0]["environment"]["RUNTIMEURL"] == (
            "https://runtimes.example.com/node/0.8.2.exe;"
            "https://runtimes.example.com/iisnode/0.1.21.exe"
        )

    def test_deployment_settings_are_recorded(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test the publish result is written to deploymentSettings.json."""
        root = make_service()
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client, recording_uploader).publish(root)

        record = load_deployment_settings(ServicePaths.for_root(root).deployment_settings)
        assert record is not None
        assert record.service_name == "myservice"
        assert record.storage_account == "myservice"
        assert record.slot == DeploymentSlot.PRODUCTION
        assert record.status == "Running"
        assert record.url == "http://myservice.cloudapp.net/"
        assert record.package_url == recording_uploader.url
        assert record.created_at is not None


class TestCertificates:
    """Tests for certificate registration."""

    def _service_with_certificate(
        self, make_service: Callable[..., Path], pfx_path: str | None
    ) -> Path:
        certificate: dict[str, Any] = {"name": "SSL", "thumbprint": "abc123"}
        if pfx_path:
            certificate.update({"pfx_path": pfx_path, "password": "secret"})
        return make_service(
            cloud_roles={
                "WebRole1": {"instances": 2, "certificates": [certificate]},
            }
        )

    def test_missing_certificate_is_added(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a declared certificate is uploaded after the service exists."""
        root = self._service_with_certificate(make_service, "certs/ssl.pfx")
        (root / "certs").mkdir()
        (root / "certs" / "ssl.pfx").write_bytes(b"pfx-bytes")
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client, recording_uploader).publish(root)

        assert _mutations(scripted_client) == [
            "create_storage_service",
            "create_hosted_service",
            "add_certificate",
            "create_or_update_deployment",
        ]
        (args, _), = scripted_client.calls_to("add_certificate")
        assert args == ("myservice", b"pfx-bytes", "secret")
        request = _request(scripted_client, "create_or_update_deployment")
        assert 'thumbprint="abc123"' in request.configuration
        assert '<Instances count="2" />' in request.configuration

    def test_registered_certificate_is_skipped(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test thumbprints already on the service are not uploaded again."""
        root = self._service_with_certificate(make_service, "certs/ssl.pfx")
        scripted_client.script("list_certificates", [Certificate(thumbprint="ABC123")])
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client, recording_uploader).publish(root)

        assert "list_certificates" in scripted_client.operations()
        assert "add_certificate" not in scripted_client.operations()

    def test_certificate_without_pfx_is_skipped(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a certificate with no local file is left to the user."""
        root = self._service_with_certificate(make_service, None)
        _script_new_service(scripted_client, make_snapshot())

        _orchestrator(scripted_client, recording_uploader).publish(root)

        assert "add_certificate" not in scripted_client.operations()

    def test_unreadable_pfx(
        self,
        make_service: Callable[..., Path],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a missing pfx file fails before the deployment is created."""
        root = self._service_with_certificate(make_service, "certs/missing.pfx")
        _script_new_service(scripted_client)

        with pytest.raises(DeploymentError) as exc_info:
            _orchestrator(scripted_client, recording_uploader).publish(root)

        assert exc_info.value.operation == "add_certificate"
        assert "create_or_update_deployment" not in scripted_client.operations()


class TestPublishFailures:
    """Tests for error propagation."""

    def test_deployment_failure_is_wrapped(
        self,
        make_service: Callable[..., Path],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a failed create carries the provider diagnostics."""
        root = make_service()
        _script_new_service(scripted_client)
        scripted_client.script(
            "create_or_update_deployment",
            RemoteCallError("Conflict", status_code=409, operation_id="op-42"),
        )

        with pytest.raises(MutationError) as exc_info:
            _orchestrator(scripted_client, recording_uploader).publish(root)

        error = exc_info.value
        assert error.operation == "create_deployment"
        assert error.status_code == 409
        assert error.error_message == "Conflict"
        assert error.operation_id == "op-42"
        assert isinstance(error.__cause__, RemoteCallError)
        assert scripted_client.operations().count("create_or_update_deployment") == 1
        assert scripted_client.operations()[-1] == "create_or_update_deployment"

    def test_storage_creation_failure_stops_publish(
        self, make_service: Callable[..., Path], scripted_client: Any
    ) -> None:
        """Test no hosted service mutation follows a failed storage creation."""
        root = make_service()
        scripted_client.script(
            "create_storage_service", RemoteCallError("Quota", status_code=400)
        )

        with pytest.raises(MutationError) as exc_info:
            _orchestrator(scripted_client).publish(root, skip_upload=True)

        assert exc_info.value.operation == "create_storage"
        assert _mutations(scripted_client) == ["create_storage_service"]

    def test_upload_failure_is_wrapped(
        self,
        make_service: Callable[..., Path],
        scripted_client: Any,
        recording_uploader: Any,
    ) -> None:
        """Test a failed upload is reported as a mutation failure."""
        root = make_service()
        _script_new_service(scripted_client)
        recording_uploader.error = RemoteCallError("Denied", status_code=500)

        with pytest.raises(MutationError) as exc_info:
            _orchestrator(scripted_client, recording_uploader).publish(root)

        assert exc_info.value.operation == "upload"

    def test_storage_keys_failure_after_storage_created(
        self, make_service: Callable[..., Path], scripted_client: Any
    ) -> None:
        """Test a key lookup failing after creation is not reported as a probe."""
        root = make_service()
        _script_new_service(scripted_client)
        scripted_client.script(
            "get_storage_keys",
            RemoteCallError("Unavailable", status_code=503, operation_id="op-7"),
        )

        with pytest.raises(RemoteReadError) as exc_info:
            _orchestrator(scripted_client).publish(root, skip_upload=True)

        assert not isinstance(exc_info.value, ProbeError)
        assert exc_info.value.operation == "storage_keys"
        assert exc_info.value.status_code == 503
        assert exc_info.value.operation_id == "op-7"
        assert _mutations(scripted_client) == ["create_storage_service"]

    def test_deployment_never_ready(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
    ) -> None:
        """Test the waiter bound surfaces the last observed deployment."""
        root = make_service()
        _script_new_service(
            scripted_client,
            make_snapshot(status="Deploying", instances=("Initializing",)),
        )

        with pytest.raises(WaitTimeoutError) as exc_info:
            _orchestrator(scripted_client).publish(root, skip_upload=True)

        error = exc_info.value
        assert error.operation == "wait_deployment"
        assert error.attempts == 5
        assert error.last_value.status == DeploymentStatus.DEPLOYING
        assert scripted_client.operations().count("get_deployment_by_slot") == 6

    def test_require_running(
        self,
        make_service: Callable[..., Path],
        make_snapshot: Callable[..., DeploymentStatusSnapshot],
        scripted_client: Any,
    ) -> None:
        """Test strict readiness waits past Starting."""
        root = make_service()
        scripted_client.script(
            "get_hosted_service", HostedServiceDetails(service_name="myservice")
        )
        scripted_client.script(
            "get_deployment_by_slot",
            make_snapshot(status="Starting"),
            make_snapshot(status="Starting"),
            make_snapshot(status="Running"),
        )
        scripted_client.script("get_storage_service", _storage(StorageStatus.CREATED))

        snapshot = _orchestrator(scripted_client, require_running=True).publish(
            root, skip_upload=True
        )

        assert snapshot.status == DeploymentStatus.RUNNING
        assert scripted_client.operations().count("get_deployment_by_slot") == 3
