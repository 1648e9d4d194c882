"""Nimbus publish engine.

This package provides the publish functionality for Nimbus services,
including packaging, remote state probing, orchestration and waiting for
asynchronous remote operations.
"""

from nimbus.deploy.orchestrator import PublishOrchestrator
from nimbus.deploy.packager import PackageArtifact, PackageBuilder
from nimbus.deploy.prober import RemoteServiceState, RemoteStateProber
from nimbus.deploy.waiter import deployment_ready, storage_ready, wait_until

__all__ = [
    "PackageArtifact",
    "PackageBuilder",
    "PublishOrchestrator",
    "RemoteServiceState",
    "RemoteStateProber",
    "deployment_ready",
    "storage_ready",
    "wait_until",
]
