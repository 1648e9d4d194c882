"""Shared error handling for Nimbus CLI commands."""

from __future__ import annotations

import sys
from collections.abc import Generator
from contextlib import contextmanager

import click

from nimbus.lib.errors import (
    CloudSDKNotInstalledError,
    ConfigError,
    DeploymentError,
    FileNotFoundError,
    NimbusError,
)
from nimbus.lib.logging_config import get_logger

logger = get_logger(__name__)


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in publish commands.

    Catches and handles ConfigError, DeploymentError, and unexpected exceptions
    with appropriate logging, user feedback, and exit codes.

    Exit codes:
        2: Configuration error
        3: Deployment/execution error
    """
    try:
        yield
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e.path}")
        click.secho(f"Error: File not found: {e.path}", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except CloudSDKNotInstalledError as e:
        logger.error(str(e))
        click.secho("Error: Cloud SDK not installed", fg="red", err=True)
        click.echo(f"  {e}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except NimbusError as e:
        logger.error(f"Error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)
