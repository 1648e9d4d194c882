"""Deployment settings persistence helpers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from nimbus.lib.errors import DeploymentError
from nimbus.models.deployment_state import DeploymentSettings

SETTINGS_VERSION = "1.0"


def load_deployment_settings(settings_path: Path) -> DeploymentSettings | None:
    """Load the last deployment settings of a service, if any."""
    if not settings_path.exists():
        return None

    try:
        content = settings_path.read_text(encoding="utf-8")
        if not content.strip():
            return None
    except OSError as exc:
        raise DeploymentError(
            operation="settings",
            message=f"Failed to read deployment settings at {settings_path}: {exc}",
        ) from exc

    try:
        return DeploymentSettings.model_validate_json(content)
    except ValidationError as exc:
        raise DeploymentError(
            operation="settings",
            message=f"Invalid deployment settings format in {settings_path}: {exc}",
        ) from exc


def save_deployment_settings(settings_path: Path, settings: DeploymentSettings) -> None:
    """Persist deployment settings to disk."""
    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(settings.model_dump(mode="json"), indent=2, sort_keys=True)
        settings_path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        raise DeploymentError(
            operation="settings",
            message=f"Failed to write deployment settings to {settings_path}: {exc}",
        ) from exc


def update_deployment_settings(
    settings_path: Path, settings: DeploymentSettings
) -> DeploymentSettings:
    """Merge timestamps with the previous record and persist it."""
    existing = load_deployment_settings(settings_path)
    now = datetime.now(timezone.utc)

    previous = existing.created_at if existing else None
    created_at = settings.created_at or previous or now
    updated = settings.model_copy(
        update={
            "created_at": created_at,
            "updated_at": now,
            "version": settings.version or SETTINGS_VERSION,
        }
    )
    save_deployment_settings(settings_path, updated)
    return updated
