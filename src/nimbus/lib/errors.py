"""Custom exception hierarchy for Nimbus configuration and publish operations."""

from __future__ import annotations

from typing import Any


class NimbusError(Exception):
    """Base exception for all Nimbus errors.

    All Nimbus-specific exceptions inherit from this class, enabling
    centralized exception handling in the command layer.
    """

    pass


class ConfigError(NimbusError):
    """Exception raised for configuration errors.

    This exception is raised when configuration or service descriptor loading
    fails. It includes field-specific information to help users identify and
    fix configuration issues.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class FileNotFoundError(NimbusError):
    """Exception raised when a service or configuration file is not found.

    Attributes:
        path: Path to the file that was not found
        message: Human-readable error message
    """

    def __init__(self, path: str, message: str) -> None:
        """Initialize FileNotFoundError with path and message.

        Args:
            path: Path to the file that was not found
            message: Descriptive error message, optionally with suggestions
        """
        self.path = path
        self.message = message
        super().__init__(f"File not found: {path}\n{message}")


class CloudSDKNotInstalledError(NimbusError):
    """Raised when an optional cloud SDK is required but not installed."""

    def __init__(self, provider: str, sdk_name: str) -> None:
        """Create an error pointing at the missing SDK distribution."""
        self.provider = provider
        self.sdk_name = sdk_name
        super().__init__(
            f"The {provider} SDK is not installed. "
            f"Install it with: pip install 'nimbus-publish[{provider}]' "
            f"(requires {sdk_name})"
        )


class ResourceNotFoundError(NimbusError):
    """Raised by a management client when a remote resource does not exist.

    Existence probes treat this as an answer, not a failure.

    Attributes:
        resource_type: Kind of resource that was looked up
        name: Name of the resource
    """

    def __init__(self, resource_type: str, name: str) -> None:
        """Create a not-found error for a named remote resource."""
        self.resource_type = resource_type
        self.name = name
        super().__init__(f"{resource_type} '{name}' was not found")


class RemoteCallError(NimbusError):
    """Raised by a management client when a remote call fails.

    Attributes:
        status_code: HTTP status code reported by the provider, if any
        message: Provider-supplied error message
        operation_id: Provider request/operation identifier, if any
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        operation_id: str | None = None,
    ) -> None:
        """Create a remote call error with provider diagnostics."""
        self.message = message
        self.status_code = status_code
        self.operation_id = operation_id
        super().__init__(format_remote_details(message, status_code, operation_id))


class AuthorizationError(RemoteCallError):
    """Raised when the provider refuses the call (HTTP 403)."""

    def __init__(self, message: str, operation_id: str | None = None) -> None:
        """Create an authorization error with a user-facing diagnostic."""
        super().__init__(
            "Communication could not be established. Verify that the "
            "subscription id and management certificate are valid and that "
            f"the certificate is uploaded to the subscription. ({message})",
            status_code=403,
            operation_id=operation_id,
        )


class DeploymentError(NimbusError):
    """Exception raised when a publish step fails.

    Attributes:
        operation: The step that failed (e.g. "probe", "create_storage")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Create a deployment error for a named step."""
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class PackagingError(DeploymentError):
    """Raised when local packaging fails before any remote call."""

    def __init__(self, message: str) -> None:
        """Create a packaging error."""
        super().__init__(operation="package", message=message)


class RemoteReadError(DeploymentError):
    """Raised when a read of remote state fails during publish.

    Reads such as storage keys, registered certificates and wait polls can
    happen after resources were created, so nothing is implied about what
    has already changed remotely.

    Attributes:
        status_code: HTTP status code reported by the provider, if any
        operation_id: Provider request/operation identifier, if any
    """

    def __init__(self, operation: str, cause: RemoteCallError) -> None:
        """Wrap a remote failure raised by a read."""
        self.status_code = cause.status_code
        self.operation_id = cause.operation_id
        super().__init__(operation=operation, message=str(cause))


class ProbeError(RemoteReadError):
    """Raised when an existence probe fails with anything but not-found.

    Probes run before any mutation, so nothing has been changed remotely.
    """


class MutationError(DeploymentError):
    """Raised when a create, update or upgrade call fails.

    Attributes:
        status_code: HTTP status code reported by the provider, if any
        error_message: Provider-supplied error message
        operation_id: Provider request/operation identifier, if any
    """

    def __init__(self, operation: str, cause: RemoteCallError) -> None:
        """Wrap a remote failure raised by a mutating call."""
        self.status_code = cause.status_code
        self.error_message = cause.message
        self.operation_id = cause.operation_id
        super().__init__(operation=operation, message=str(cause))


class WaitTimeoutError(DeploymentError):
    """Raised when a remote resource does not reach a terminal state in time.

    Attributes:
        last_value: The last (non-terminal) value observed by the waiter
        attempts: Number of polls performed
    """

    def __init__(
        self, operation: str, message: str, last_value: Any, attempts: int
    ) -> None:
        """Create a timeout error carrying the last observed snapshot."""
        self.last_value = last_value
        self.attempts = attempts
        super().__init__(operation=operation, message=message)


class OperationCancelledError(DeploymentError):
    """Raised when a wait is cancelled by the caller."""

    pass


def format_remote_details(
    message: str, status_code: int | None, operation_id: str | None
) -> str:
    """Format provider diagnostics the way the command layer prints them."""
    parts = []
    if status_code is not None:
        parts.append(f"HTTP Status Code: {status_code}")
    parts.append(f"HTTP Error Message: {message}")
    details = " - ".join(parts)
    if operation_id:
        details += f"\nOperation ID: {operation_id}"
    return details
