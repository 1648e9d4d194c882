"""Click command for creating new Nimbus services.

This module implements the 'nimbus new' command, which creates a service
root with an empty service definition and empty configurations.
"""

from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError

from nimbus.cli.errors import handle_deployment_errors
from nimbus.config.loader import ServiceLoader
from nimbus.config.validator import validation_message
from nimbus.lib.errors import ConfigError
from nimbus.models.service import ServiceConfiguration, ServiceDescriptor, ServicePaths


@click.command(name="new")
@click.argument("service_name")
@click.option(
    "--path",
    "parent_dir",
    type=click.Path(file_okay=False),
    default=".",
    help="Directory in which the service directory is created",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing service files",
)
def new(service_name: str, parent_dir: str, force: bool) -> None:
    """Create a new service.

    Creates SERVICE_NAME/ with service.yaml, service.cloud.yaml and
    service.local.yaml. Roles are added by editing service.yaml.

    Example:

        nimbus new my-service
    """
    with handle_deployment_errors():
        try:
            descriptor = ServiceDescriptor(name=service_name)
        except PydanticValidationError as e:
            raise ConfigError("name", validation_message(e, "service name")) from e

        root = Path(parent_dir) / service_name
        paths = ServicePaths.for_root(root)
        if paths.definition.exists() and not force:
            raise ConfigError(
                "name",
                f"A service already exists at {paths.root}. Use --force to overwrite.",
            )

        paths.root.mkdir(parents=True, exist_ok=True)
        loader = ServiceLoader()
        loader.save_descriptor(paths, descriptor)
        loader.save_configuration(paths.cloud_configuration, ServiceConfiguration())
        loader.save_configuration(paths.local_configuration, ServiceConfiguration())

        click.secho(f"Created service {service_name} in {paths.root}", fg="green")
