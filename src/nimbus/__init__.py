"""Nimbus - package and publish cloud services from the command line.

Nimbus turns a local service definition (roles, per-environment
configuration) into a deployable package and publishes it: it provisions the
storage account and hosted service when they are missing, creates or upgrades
the deployment in the target slot, and waits for the role instances to come up.
"""

from nimbus.config.loader import ServiceLoader
from nimbus.lib.errors import ConfigError, DeploymentError, NimbusError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ServiceLoader",
    "ConfigError",
    "DeploymentError",
    "NimbusError",
]
