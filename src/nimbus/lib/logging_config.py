"""Logging configuration for Nimbus.

All modules obtain their logger through get_logger() so that log records are
grouped under the ``nimbus`` namespace. The CLI calls setup_logging() once per
command invocation.
"""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER_NAME = "nimbus"

DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

# Third-party loggers, capped at WARNING even with --verbose
NOISY_LOGGERS = (
    "azure",
    "azure.core.pipeline.policies.http_logging_policy",
    "urllib3",
    "requests",
)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the nimbus namespace.

    Args:
        name: Module name, usually ``__name__``

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the nimbus logger hierarchy.

    Args:
        verbose: Enable DEBUG level output
        quiet: Only show errors
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    # Replace handlers so repeated invocations (tests, CliRunner) don't stack
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
    root.addHandler(handler)
    root.propagate = False

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
