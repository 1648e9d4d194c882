"""CLI command for publishing Nimbus services.

Implements 'nimbus publish', which packages a service and creates or
upgrades its deployment.
"""

from __future__ import annotations

from pathlib import Path

import click

from nimbus.cli.errors import handle_deployment_errors
from nimbus.config.loader import ServiceLoader
from nimbus.deploy.clients import create_client, create_uploader
from nimbus.deploy.orchestrator import PublishOrchestrator
from nimbus.lib.logging_config import get_logger, setup_logging
from nimbus.models.deployment import DeploymentSlot

logger = get_logger(__name__)


@click.command(name="publish")
@click.argument(
    "service_path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    required=False,
)
@click.option("--name", "service_name", default=None, help="Publish under a new name")
@click.option(
    "--slot",
    type=click.Choice([slot.value for slot in DeploymentSlot], case_sensitive=False),
    default=None,
    help="Deployment slot (default: Production)",
)
@click.option(
    "--skip-upload",
    is_flag=True,
    help="Deploy from the local package instead of uploading it",
)
@click.option(
    "--launch",
    is_flag=True,
    help="Open the deployment URL in a browser when done",
)
@click.option("--location", default=None, help="Location for new resources")
@click.option("--affinity-group", default=None, help="Affinity group for new resources")
@click.option("--storage-account", default=None, help="Storage account to use")
@click.option(
    "--runtime-manifest",
    default=None,
    help="Runtime manifest file or URL used to pick role runtimes",
)
@click.option(
    "--require-running",
    is_flag=True,
    help="Wait for Running instead of accepting Starting",
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
    help="Suppress progress output",
)
def publish(
    service_path: str,
    service_name: str | None,
    slot: str | None,
    skip_upload: bool,
    launch: bool,
    location: str | None,
    affinity_group: str | None,
    storage_account: str | None,
    runtime_manifest: str | None,
    require_running: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Package a service and publish it.

    SERVICE_PATH is the service root directory (default: current directory).

    Creates the storage account and hosted service when they are missing,
    then creates the deployment in the target slot or upgrades the one
    already there, and waits for the role instances to start.

    Example:

        nimbus publish

        nimbus publish ./my-service --slot staging --launch
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        root = Path(service_path).resolve()
        loader = ServiceLoader()
        settings = loader.load_publish_settings(
            root,
            overrides={
                "slot": slot,
                "location": location,
                "affinity_group": affinity_group,
                "storage_account": storage_account,
                "runtime_manifest": runtime_manifest,
                "require_running": True if require_running else None,
            },
        )

        client = create_client(settings)
        uploader = None if skip_upload else create_uploader(settings)
        orchestrator = PublishOrchestrator(client, settings, uploader, loader=loader)

        if not quiet:
            click.echo(f"Publishing service in {root}...")

        snapshot = orchestrator.publish(
            root,
            service_name=service_name,
            skip_upload=skip_upload,
        )

        if quiet:
            click.echo(snapshot.url or "")
        else:
            click.echo()
            click.secho("Publish Successful!", fg="green", bold=True)
            click.echo(f"  Deployment: {snapshot.name}")
            click.echo(f"  Slot:       {snapshot.slot.value}")
            click.echo(f"  Status:     {snapshot.status.value}")
            click.echo(f"  Instances:  {len(snapshot.role_instances)}")
            click.echo(f"  URL:        {snapshot.url or '(not available yet)'}")
            click.echo()

        if launch:
            if snapshot.url:
                click.launch(snapshot.url)
            else:
                logger.warning("Deployment has no URL to launch")

