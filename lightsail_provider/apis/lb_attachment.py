"""
Load-balancer attachment router — all endpoints under /lb-attachments.

Endpoints
─────────
  POST   /lb-attachments        Attach an instance to a load balancer
  GET    /lb-attachments/{id}   Refresh a tracked attachment (id = LB_NAME,INSTANCE_NAME)
  DELETE /lb-attachments/{id}   Detach the instance
"""

import logging

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException, status

from lightsail_provider.apis.errors import to_http_error
from lightsail_provider.cloud.operations import OperationWaiter
from lightsail_provider.dao.base import ResourceStateRepository
from lightsail_provider.dependencies.api import get_current_user
from lightsail_provider.dependencies.cloud import get_lightsail_client, get_operation_waiter
from lightsail_provider.dependencies.dao import get_state_repository
from lightsail_provider.errors import LightsailProviderError
from lightsail_provider.schemas.lb_attachment import AttachmentResponse, CreateAttachmentRequest
from lightsail_provider.services.lb_attachment import (
    attach_instance,
    detach_instance,
    fetch_attachment,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lb-attachments", tags=["Load Balancer Attachments"])


@router.post(
    "",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach an instance to a load balancer",
)
def create_attachment(
    body: CreateAttachmentRequest,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    waiter: OperationWaiter = Depends(get_operation_waiter),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> AttachmentResponse:
    logger.info(
        "POST /lb-attachments (%s -> %s) called by '%s'",
        body.instance_name,
        body.lb_name,
        current_user,
    )
    try:
        record = attach_instance(body.lb_name, body.instance_name, client, waiter, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(
            f"attaching {body.instance_name} to Lightsail load balancer {body.lb_name}", exc
        ) from exc
    return AttachmentResponse(**record)


@router.get(
    "/{attachment_id}",
    response_model=AttachmentResponse,
    summary="Read a tracked attachment",
)
def get_attachment(
    attachment_id: str,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> AttachmentResponse:
    logger.info("GET /lb-attachments/%s called by '%s'", attachment_id, current_user)
    try:
        record = fetch_attachment(attachment_id, client, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(
            f"reading Lightsail load balancer attachment {attachment_id}", exc
        ) from exc
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attachment '{attachment_id}' not found.",
        )
    return AttachmentResponse(**record)


@router.delete(
    "/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Detach an instance from its load balancer",
)
def delete_attachment(
    attachment_id: str,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    waiter: OperationWaiter = Depends(get_operation_waiter),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> None:
    logger.info("DELETE /lb-attachments/%s called by '%s'", attachment_id, current_user)
    try:
        detach_instance(attachment_id, client, waiter, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(
            f"deleting Lightsail load balancer attachment {attachment_id}", exc
        ) from exc
