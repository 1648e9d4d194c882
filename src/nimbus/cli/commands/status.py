"""CLI command for checking the deployment of a published service."""

from __future__ import annotations

from pathlib import Path

import click

from nimbus.cli.errors import handle_deployment_errors
from nimbus.config.loader import ServiceLoader
from nimbus.deploy.clients import create_client
from nimbus.deploy.state import load_deployment_settings, update_deployment_settings
from nimbus.lib.errors import (
    ConfigError,
    ProbeError,
    RemoteCallError,
    ResourceNotFoundError,
)
from nimbus.lib.logging_config import setup_logging
from nimbus.models.service import ServicePaths


@click.command(name="status")
@click.argument(
    "service_path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    required=False,
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only print the deployment status",
)
def status(service_path: str, verbose: bool, quiet: bool) -> None:
    """Check the deployment status of a published service."""
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        root = Path(service_path).resolve()
        paths = ServicePaths.for_root(root)
        record = load_deployment_settings(paths.deployment_settings)
        if record is None:
            raise ConfigError(
                field="deployment_settings",
                message="No deployment settings found. Run `nimbus publish` first.",
            )

        settings = ServiceLoader().load_publish_settings(root)
        if not settings.subscription_id and record.subscription_id:
            settings = settings.model_copy(
                update={"subscription_id": record.subscription_id}
            )
        client = create_client(settings)

        try:
            snapshot = client.get_deployment_by_slot(record.service_name, record.slot)
        except ResourceNotFoundError:
            snapshot = None
        except RemoteCallError as exc:
            raise ProbeError("status", exc) from exc

        if snapshot is None:
            updated = record.model_copy(update={"status": "NotDeployed"})
        else:
            updated = record.model_copy(
                update={
                    "deployment_name": snapshot.name,
                    "status": snapshot.status.value,
                    "url": snapshot.url or record.url,
                }
            )
        record = update_deployment_settings(paths.deployment_settings, updated)

        if quiet:
            click.echo(record.status or "Unknown")
            return

        click.echo()
        click.secho("Deployment Status", bold=True)
        click.echo(f"  Service:    {record.service_name}")
        click.echo(f"  Slot:       {record.slot.value}")
        click.echo(f"  Status:     {record.status}")
        if snapshot is not None:
            for instance in snapshot.role_instances:
                click.echo(
                    f"  Instance:   {instance.instance_name} "
                    f"({instance.instance_status.value})"
                )
        if record.url:
            click.echo(f"  URL:        {record.url}")
        if record.updated_at:
            click.echo(f"  Updated:    {record.updated_at.isoformat()}")
        click.echo()
