"""Storage account naming and connection strings."""

from __future__ import annotations

from nimbus.config.defaults import (
    STORAGE_CONNECTION_STRING_SETTINGS,
    STORAGE_CONNECTION_STRING_TEMPLATE,
)
from nimbus.models.deployment import StorageKeys
from nimbus.models.service import ServiceConfiguration

MIN_STORAGE_ACCOUNT_LENGTH = 3
MAX_STORAGE_ACCOUNT_LENGTH = 24


def storage_account_name(service_name: str) -> str:
    """Derive a valid storage account name from a service name.

    Storage accounts only allow lowercase letters and digits, so every other
    character is encoded as ``x`` followed by its two-digit hex code, e.g.
    ``TEST_SERVICE_NAME`` becomes ``testx5fservicex5fname``. Names shorter
    than the 3-character minimum are padded with ``0``, so ``ab`` becomes
    ``ab0``.
    """
    encoded = []
    for char in service_name.lower():
        if char.isascii() and char.isalnum():
            encoded.append(char)
        else:
            encoded.append(f"x{ord(char):02x}")
    name = "".join(encoded)[:MAX_STORAGE_ACCOUNT_LENGTH]
    return name.ljust(MIN_STORAGE_ACCOUNT_LENGTH, "0")


def connection_string(account_name: str, keys: StorageKeys) -> str:
    """Build the storage connection string from the primary key."""
    return STORAGE_CONNECTION_STRING_TEMPLATE.format(
        name=account_name, key=keys.primary
    )


def inject_connection_strings(
    configuration: ServiceConfiguration, value: str
) -> list[str]:
    """Set known storage connection-string settings in every role.

    Only settings a role already declares are updated.

    Returns:
        Names of the roles that were changed
    """
    changed: list[str] = []
    for role_name, role in configuration.roles.items():
        updated = False
        for setting in STORAGE_CONNECTION_STRING_SETTINGS:
            if setting in role.settings and role.settings[setting] != value:
                role.settings[setting] = value
                updated = True
        if updated:
            changed.append(role_name)
    return changed
