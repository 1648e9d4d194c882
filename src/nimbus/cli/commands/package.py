"""CLI command for building cloud packages without publishing."""

from __future__ import annotations

from pathlib import Path

import click

from nimbus.cli.errors import handle_deployment_errors
from nimbus.config.loader import ServiceLoader
from nimbus.deploy.packager import PackageBuilder
from nimbus.lib.logging_config import setup_logging
from nimbus.models.service import ServicePaths


@click.command(name="package")
@click.argument(
    "service_path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    required=False,
)
@click.option(
    "--exclude",
    "exclude_patterns",
    multiple=True,
    help="Additional path segment glob to exclude (repeatable)",
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
    help="Only print the package path",
)
def package(
    service_path: str,
    exclude_patterns: tuple[str, ...],
    verbose: bool,
    quiet: bool,
) -> None:
    """Build the cloud package of a service.

    SERVICE_PATH is the service root directory (default: current directory).

    Example:

        nimbus package ./my-service --exclude "*.tmp"
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        root = Path(service_path).resolve()
        loader = ServiceLoader()
        settings = loader.load_publish_settings(root)
        paths = ServicePaths.for_root(root)
        descriptor = loader.load_descriptor(paths)

        builder = PackageBuilder([*settings.exclude_patterns, *exclude_patterns])
        artifact = builder.build(descriptor, paths)

        if quiet:
            click.echo(str(artifact.path))
            return

        click.echo()
        click.secho("Package Created", fg="green", bold=True)
        click.echo(f"  Path:   {artifact.path}")
        click.echo(f"  Size:   {artifact.size} bytes")
        for role_name, entries in artifact.role_entries.items():
            click.echo(f"  Role:   {role_name} ({len(entries)} files)")
        click.echo()
