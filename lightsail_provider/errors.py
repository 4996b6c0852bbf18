"""
Exception taxonomy for Lightsail resource handling.

Every error raised by the cloud and service layers inherits from
`LightsailProviderError`, so routers can catch the whole family with a single
clause and map individual subclasses to HTTP status codes.

Raw `botocore.exceptions.ClientError` instances that do not fit one of these
categories are *not* wrapped — they propagate unchanged.
"""

from typing import Optional


class LightsailProviderError(Exception):
    """Base exception for all Lightsail provider errors."""


class ResourceNotFoundError(LightsailProviderError):
    """
    Raised when a resource no longer exists on the Lightsail side.

    Read paths recover from this locally (the tracked record is dropped);
    delete paths surface it as a NotFound classification.
    """

    def __init__(self, action: str, identifier: str, message: str = "not found"):
        self.action = action
        self.identifier = identifier
        super().__init__(f"{action} {identifier}: {message}")


class ValidationError(LightsailProviderError):
    """Raised when a configuration or identifier is malformed."""


class MissingOperationError(LightsailProviderError):
    """Raised when a mutating call returns no operation handle to wait on."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"No operations found for {action} request")


class OperationError(LightsailProviderError):
    """Common base for errors produced while waiting on an operation."""

    def __init__(self, operation_id: str, message: str):
        self.operation_id = operation_id
        super().__init__(message)


class OperationFailedError(OperationError):
    """The vendor reported the operation as failed."""

    def __init__(self, operation_id: str, status: str, reason: Optional[str] = None):
        self.status = status
        self.reason = reason
        message = f"operation {operation_id} finished with status {status}"
        if reason:
            message += f": {reason}"
        super().__init__(operation_id, message)


class OperationTimeoutError(OperationError):
    """
    The wait ceiling elapsed before the operation settled.

    The remote action may still complete later; callers must not assume it
    was rolled back.
    """

    def __init__(self, operation_id: str, timeout: float, last_status: Optional[str] = None):
        self.timeout = timeout
        self.last_status = last_status
        message = f"timeout while waiting for operation {operation_id} ({timeout:.0f}s)"
        if last_status:
            message += f", last status: {last_status}"
        super().__init__(operation_id, message)


class OperationNotFoundError(OperationError):
    """The polled operation id was never known to the vendor API."""

    def __init__(self, operation_id: str):
        super().__init__(operation_id, f"operation {operation_id} not found")


class TransientAPIError(LightsailProviderError):
    """Throttling / availability errors that persisted past the retry budget."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(f"{message} (after {attempts} attempts)")


def with_context(prefix: str, exc: Exception) -> str:
    """Return the error message prefixed with a short action/identifier context."""
    return f"{prefix}: {exc}"
