"""
Operation reconciler — waits for asynchronous Lightsail operations to settle.

Lightsail's mutating calls (CreateInstances, DeleteInstance, SetIpAddressType,
AttachInstancesToLoadBalancer, …) return immediately with a list of
*operations*.  The actual work happens on the AWS side; the only way to learn
its result is to poll ``GetOperation`` until the status is terminal:

    NotStarted ─┐
                ├─► Started ─┬─► Succeeded / Completed   (success)
                │            └─► Failed                  (failure)

`OperationWaiter.wait` returns an `OperationOutcome` instead of raising, so
each caller applies its own policy: the create path logs and carries on,
while delete/update/attach paths call `raise_for_outcome()`.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from lightsail_provider.config import Settings
from lightsail_provider.errors import (
    MissingOperationError,
    OperationFailedError,
    OperationNotFoundError,
    OperationTimeoutError,
    TransientAPIError,
)

logger = logging.getLogger(__name__)

PENDING_STATUSES = frozenset({"NotStarted", "Started"})
SUCCESS_STATUSES = frozenset({"Succeeded", "Completed"})
FAILURE_STATUSES = frozenset({"Failed"})

TRANSIENT_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "InternalFailure",
        "InternalServerError",
    }
)

_CONNECTION_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


class OperationState(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class OperationOutcome:
    """
    Tagged result of waiting on one operation.

    Attributes:
        operation_id: The polled operation id
        state: succeeded / failed / timed_out
        status: Last status reported by Lightsail (None if never observed)
        reason: Vendor error text when the operation failed
        elapsed: Seconds spent waiting
    """
    operation_id: str
    state: OperationState
    status: Optional[str] = None
    reason: Optional[str] = None
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state is OperationState.SUCCEEDED

    def raise_for_outcome(self) -> None:
        """Raise the matching error unless the operation succeeded."""
        if self.state is OperationState.FAILED:
            raise OperationFailedError(self.operation_id, self.status or "unknown", self.reason)
        if self.state is OperationState.TIMED_OUT:
            raise OperationTimeoutError(self.operation_id, self.elapsed, self.status)


@dataclass
class OperationWaiter:
    """
    Polls ``GetOperation`` until terminal status or timeout.

    The first poll happens after ``initial_delay``; later polls back off by
    ``backoff_factor`` up to ``max_poll_interval``.  No sleep ever runs past
    the deadline.

    ``sleep`` and ``clock`` are injectable so tests can drive the loop
    without real waiting.
    """
    timeout: float = 600
    initial_delay: float = 5
    poll_interval: float = 3
    max_poll_interval: float = 10
    backoff_factor: float = 1.5
    max_transient_retries: int = 3
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "OperationWaiter":
        """Build a waiter from application settings."""
        kwargs = {
            "timeout": settings.operation_timeout,
            "initial_delay": settings.operation_initial_delay,
            "poll_interval": settings.operation_poll_interval,
            "max_poll_interval": settings.operation_max_poll_interval,
            "backoff_factor": settings.operation_backoff_factor,
            "max_transient_retries": settings.operation_max_transient_retries,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def wait(self, client, operation_id: str) -> OperationOutcome:
        """
        Wait for *operation_id* to reach a terminal state.

        Returns
        -------
        OperationOutcome
            ``succeeded``, ``failed`` (with the vendor reason) or
            ``timed_out``.

        Raises
        ------
        OperationNotFoundError
            The id is unknown on the very first poll.
        TransientAPIError
            Throttling / availability errors outlasted the retry budget.
        botocore.exceptions.ClientError
            Any other API error, unchanged.
        """
        if not operation_id:
            raise ValueError("operation_id must be a non-empty string")

        start = self.clock()
        deadline = start + self.timeout
        interval = self.poll_interval
        seen = False
        transient_failures = 0
        last_status: Optional[str] = None

        logger.info("Waiting for Lightsail operation %s (timeout %.0fs)", operation_id, self.timeout)
        self._sleep_before(deadline, self.initial_delay)

        while True:
            try:
                response = client.get_operation(operationId=operation_id)
            except ClientError as exc:
                code = exc.response.get("Error", {}).get("Code", "")
                if code == "NotFoundException" and not seen:
                    logger.error("Operation %s is unknown to Lightsail", operation_id)
                    raise OperationNotFoundError(operation_id) from exc
                if not self._is_transient(exc, code):
                    raise
                transient_failures += 1
                self._check_retry_budget(operation_id, transient_failures, exc)
            except _CONNECTION_ERRORS as exc:
                transient_failures += 1
                self._check_retry_budget(operation_id, transient_failures, exc)
            else:
                seen = True
                transient_failures = 0
                operation = response.get("operation", {})
                last_status = operation.get("status")
                logger.debug("Operation %s status: %s", operation_id, last_status)

                if last_status in SUCCESS_STATUSES:
                    elapsed = self.clock() - start
                    logger.info("Operation %s %s in %.1fs", operation_id, last_status, elapsed)
                    return OperationOutcome(
                        operation_id, OperationState.SUCCEEDED, last_status, elapsed=elapsed
                    )
                if last_status in FAILURE_STATUSES or last_status not in PENDING_STATUSES:
                    reason = _failure_reason(operation)
                    logger.error("Operation %s ended with %s: %s", operation_id, last_status, reason)
                    return OperationOutcome(
                        operation_id,
                        OperationState.FAILED,
                        last_status,
                        reason=reason,
                        elapsed=self.clock() - start,
                    )

            remaining = deadline - self.clock()
            if remaining <= 0:
                elapsed = self.clock() - start
                logger.warning(
                    "Timed out after %.1fs waiting for operation %s (last status %s)",
                    elapsed,
                    operation_id,
                    last_status,
                )
                return OperationOutcome(
                    operation_id, OperationState.TIMED_OUT, last_status, elapsed=elapsed
                )
            self.sleep(min(interval, remaining))
            interval = min(interval * self.backoff_factor, self.max_poll_interval)

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _sleep_before(self, deadline: float, delay: float) -> None:
        remaining = deadline - self.clock()
        if delay > 0 and remaining > 0:
            self.sleep(min(delay, remaining))

    def _check_retry_budget(self, operation_id: str, failures: int, exc: Exception) -> None:
        if failures > self.max_transient_retries:
            logger.error("Giving up polling operation %s: %s", operation_id, exc)
            raise TransientAPIError(
                f"polling operation {operation_id}: {exc}", failures
            ) from exc
        logger.warning(
            "Transient error polling operation %s (%d/%d): %s",
            operation_id,
            failures,
            self.max_transient_retries,
            exc,
        )

    @staticmethod
    def _is_transient(exc: ClientError, code: str) -> bool:
        # NotFound after the id has been seen is eventual-consistency lag
        if code == "NotFoundException" or code in TRANSIENT_ERROR_CODES:
            return True
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return status >= 500


def _failure_reason(operation: dict) -> str:
    status = operation.get("status")
    code = operation.get("errorCode")
    details = operation.get("errorDetails")
    if code and details:
        return f"{code}: {details}"
    if code or details:
        return code or details
    if status not in FAILURE_STATUSES:
        return f"unexpected operation status {status!r}"
    return "no error details reported"


def first_operation_id(response: dict, action: str) -> str:
    """
    Return the id of the first operation in a mutating call's response.

    Lightsail may return several operations (e.g. one per instance); only the
    first is waited on.
    """
    operations = response.get("operations") or []
    if not operations:
        raise MissingOperationError(action)
    if len(operations) > 1:
        logger.debug(
            "%s returned %d operations; waiting on %s only",
            action,
            len(operations),
            operations[0].get("id"),
        )
    return operations[0]["id"]
