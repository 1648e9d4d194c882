"""Completion waiter for asynchronous remote operations.

Remote creations and upgrades return before the resource is usable. The
waiter polls a snapshot function until a predicate accepts the result,
sleeping between polls according to a WaitPolicy.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TypeVar

from nimbus.lib.errors import (
    OperationCancelledError,
    ResourceNotFoundError,
    WaitTimeoutError,
)
from nimbus.lib.logging_config import get_logger
from nimbus.models.deployment import (
    DeploymentStatus,
    DeploymentStatusSnapshot,
    StorageServiceDetails,
    StorageStatus,
    WaitPolicy,
)

logger = get_logger(__name__)

T = TypeVar("T")


def wait_until(
    poll: Callable[[], T],
    is_terminal: Callable[[T], bool],
    *,
    policy: WaitPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    cancel_event: threading.Event | None = None,
    retry_on: tuple[type[BaseException], ...] = (ResourceNotFoundError,),
    description: str = "operation",
) -> T:
    """Poll until a snapshot is terminal.

    Args:
        poll: Returns the current snapshot of the remote resource
        is_terminal: Predicate deciding whether the snapshot is final
        policy: Polling policy (defaults to WaitPolicy())
        sleep: Sleep function, injectable for tests
        clock: Monotonic clock, injectable for tests
        cancel_event: Set by another thread to abandon the wait
        retry_on: Exceptions from ``poll`` that count as "not terminal yet"
        description: Name of the awaited operation, used in errors and logs

    Returns:
        The first snapshot accepted by ``is_terminal``

    Raises:
        WaitTimeoutError: If max_attempts or timeout is exceeded
        OperationCancelledError: If ``cancel_event`` is set
    """
    policy = policy or WaitPolicy()
    started = clock()
    last_value: T | None = None
    attempts = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(
                operation=description,
                message=f"Wait cancelled after {attempts} poll(s)",
            )
        if attempts >= policy.max_attempts:
            raise WaitTimeoutError(
                operation=description,
                message=(
                    f"Not complete after {attempts} poll(s); "
                    f"last observed: {_describe(last_value)}"
                ),
                last_value=last_value,
                attempts=attempts,
            )
        if policy.timeout is not None and clock() - started >= policy.timeout:
            raise WaitTimeoutError(
                operation=description,
                message=(
                    f"Not complete within {policy.timeout:g}s; "
                    f"last observed: {_describe(last_value)}"
                ),
                last_value=last_value,
                attempts=attempts,
            )

        try:
            value = poll()
        except retry_on as exc:
            logger.debug(f"Waiting for {description}: {exc}")
        else:
            last_value = value
            if is_terminal(value):
                logger.debug(f"{description} complete after {attempts + 1} poll(s)")
                return value
            logger.debug(f"Waiting for {description}: {_describe(value)}")

        delay = policy.delay(attempts)
        attempts += 1
        if policy.timeout is not None:
            # Never sleep past the time bound; the next iteration raises.
            remaining = policy.timeout - (clock() - started)
            delay = min(delay, max(remaining, 0.0))
        if attempts < policy.max_attempts and delay > 0:
            sleep(delay)


def _describe(value: object) -> str:
    if value is None:
        return "nothing"
    status = getattr(value, "status", None)
    if status is not None:
        return str(getattr(status, "value", status))
    return repr(value)


def storage_ready(details: StorageServiceDetails | None) -> bool:
    """Return True once a storage account is provisioned.

    An account reported without a status has nothing pending.
    """
    if details is None:
        return False
    return details.status is None or details.status == StorageStatus.CREATED


def deployment_ready(
    require_running: bool = False,
) -> Callable[[DeploymentStatusSnapshot | None], bool]:
    """Build the readiness predicate for a deployment.

    Args:
        require_running: Only accept Running; otherwise Starting is accepted too

    Returns:
        Predicate requiring an accepted status and all role instances ready
    """
    accepted = {DeploymentStatus.RUNNING}
    if not require_running:
        accepted.add(DeploymentStatus.STARTING)

    def _ready(snapshot: DeploymentStatusSnapshot | None) -> bool:
        if snapshot is None or snapshot.status not in accepted:
            return False
        return snapshot.all_instances_ready()

    return _ready
