"""
Translate provider errors into HTTP responses.

Routers call `to_http_error(context, exc)` inside ``except`` blocks and raise
the result.  The detail is the vendor/provider message prefixed with a short
``"<action> <identifier>"`` context.
"""

import logging

from botocore.exceptions import ClientError
from fastapi import HTTPException, status

from lightsail_provider.errors import (
    LightsailProviderError,
    OperationTimeoutError,
    ResourceNotFoundError,
    TransientAPIError,
    ValidationError,
    with_context,
)

logger = logging.getLogger(__name__)


def to_http_error(context: str, exc: Exception) -> HTTPException:
    if isinstance(exc, ResourceNotFoundError):
        # already carries its own action/identifier prefix
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=with_context(context, exc),
        )
    if isinstance(exc, OperationTimeoutError):
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=with_context(context, exc),
        )
    if isinstance(exc, TransientAPIError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=with_context(context, exc),
        )
    if isinstance(exc, (LightsailProviderError, ClientError)):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=with_context(context, exc),
        )
    logger.exception("Unexpected error while %s", context)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=with_context(context, exc),
    )
