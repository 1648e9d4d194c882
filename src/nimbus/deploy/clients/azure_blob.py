"""Azure Blob Storage package uploader."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from nimbus.config.defaults import DEFAULT_UPLOAD_CONTAINER
from nimbus.deploy.clients.base import PackageUploader
from nimbus.lib.errors import (
    AuthorizationError,
    CloudSDKNotInstalledError,
    RemoteCallError,
)
from nimbus.lib.logging_config import get_logger

logger = get_logger(__name__)

BLOB_ENDPOINT_TEMPLATE = "https://{account}.blob.core.windows.net"


def package_blob_name(package_path: Path, now: datetime | None = None) -> str:
    """Return a unique blob name for a package upload."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S%f")
    return f"{stamp}_{package_path.name}"


class AzureBlobUploader(PackageUploader):
    """Upload cloud packages to an Azure Storage blob container."""

    def __init__(self, container: str = DEFAULT_UPLOAD_CONTAINER) -> None:
        """Initialize the uploader.

        Args:
            container: Container receiving packages; created when missing

        Raises:
            CloudSDKNotInstalledError: If azure-storage-blob is missing
        """
        try:
            from azure.core.exceptions import HttpResponseError, ResourceExistsError
            from azure.storage.blob import BlobServiceClient
        except ImportError as exc:
            raise CloudSDKNotInstalledError(
                provider="azure", sdk_name="azure-storage-blob"
            ) from exc

        self.container = container
        self._client_cls = BlobServiceClient
        self._http_error: type[Exception] = HttpResponseError
        self._exists_error: type[Exception] = ResourceExistsError

    def upload(self, package_path: Path, account_name: str, account_key: str) -> str:
        """Upload a package and return its blob URL."""
        service = self._client_cls(
            account_url=BLOB_ENDPOINT_TEMPLATE.format(account=account_name),
            credential={"account_name": account_name, "account_key": account_key},
        )
        container = service.get_container_client(self.container)
        blob_name = package_blob_name(package_path)

        try:
            try:
                container.create_container()
            except self._exists_error:
                logger.debug(f"Container {self.container} already exists")

            blob = container.get_blob_client(blob_name)
            with open(package_path, "rb") as data:
                blob.upload_blob(data, overwrite=True)
        except self._http_error as exc:
            status_code = getattr(exc, "status_code", None)
            if status_code == 403:
                raise AuthorizationError(str(exc)) from exc
            raise RemoteCallError(str(exc), status_code=status_code) from exc
        except OSError as exc:
            raise RemoteCallError(f"Cannot read package {package_path}: {exc}") from exc

        logger.info(f"Uploaded {package_path.name} to {blob.url}")
        return str(blob.url)
