"""
Instance router — all endpoints under /instances.

Every route requires a valid JWT (via the `get_current_user` dependency).
The Lightsail client, operation waiter, tag policy and state repository are
injected, so tests replace any of them through ``app.dependency_overrides``.

Endpoints
─────────
  POST   /instances                 Create an instance and start tracking it
  GET    /instances                 List tracked instances
  GET    /instances/{name}          Refresh a tracked instance from Lightsail
  PATCH  /instances/{name}          Update IP address type and/or tags
  DELETE /instances/{name}          Delete the instance in Lightsail
  POST   /instances/{name}/import   Track an instance created elsewhere
"""

import logging

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException, status

from lightsail_provider.apis.errors import to_http_error
from lightsail_provider.cloud.operations import OperationWaiter
from lightsail_provider.cloud.tags import TagPolicy
from lightsail_provider.dao.base import ResourceStateRepository
from lightsail_provider.dependencies.api import get_current_user
from lightsail_provider.dependencies.cloud import (
    get_lightsail_client,
    get_operation_waiter,
    get_tag_policy,
)
from lightsail_provider.dependencies.dao import get_state_repository
from lightsail_provider.errors import LightsailProviderError
from lightsail_provider.schemas.instance import (
    CreateInstanceRequest,
    InstanceListResponse,
    InstanceResponse,
    UpdateInstanceRequest,
)
from lightsail_provider.services.instance import (
    destroy_instance,
    fetch_all_instances,
    fetch_instance,
    import_instance,
    modify_instance,
    provision_instance,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/instances", tags=["Instances"])


@router.post(
    "",
    response_model=InstanceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a Lightsail instance",
)
def create_instance(
    body: CreateInstanceRequest,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    waiter: OperationWaiter = Depends(get_operation_waiter),
    tag_policy: TagPolicy = Depends(get_tag_policy),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> InstanceResponse:
    logger.info("POST /instances (%s) called by '%s'", body.name, current_user)
    try:
        record = provision_instance(body, client, waiter, tag_policy, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(f"creating Lightsail instance {body.name}", exc) from exc
    return InstanceResponse(**record)


@router.get(
    "",
    response_model=InstanceListResponse,
    summary="List tracked instances",
)
def list_instances(
    current_user: str = Depends(get_current_user),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> InstanceListResponse:
    logger.info("GET /instances called by '%s'", current_user)
    instances = [InstanceResponse(**r) for r in fetch_all_instances(repo)]
    return InstanceListResponse(count=len(instances), instances=instances)


@router.get(
    "/{name}",
    response_model=InstanceResponse,
    summary="Read a tracked instance",
    description="Re-reads the instance from Lightsail. An instance that has "
    "disappeared is dropped from tracked state and reported as 404.",
)
def get_instance(
    name: str,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    tag_policy: TagPolicy = Depends(get_tag_policy),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> InstanceResponse:
    logger.info("GET /instances/%s called by '%s'", name, current_user)
    try:
        record = fetch_instance(name, client, tag_policy, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(f"reading Lightsail instance {name}", exc) from exc
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Instance '{name}' not found.",
        )
    return InstanceResponse(**record)


@router.patch(
    "/{name}",
    response_model=InstanceResponse,
    summary="Update mutable instance attributes",
)
def update_instance(
    name: str,
    body: UpdateInstanceRequest,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    waiter: OperationWaiter = Depends(get_operation_waiter),
    tag_policy: TagPolicy = Depends(get_tag_policy),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> InstanceResponse:
    logger.info("PATCH /instances/%s called by '%s'", name, current_user)
    try:
        record = modify_instance(name, body, client, waiter, tag_policy, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(f"updating Lightsail instance {name}", exc) from exc
    return InstanceResponse(**record)


@router.delete(
    "/{name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a Lightsail instance",
)
def delete_instance(
    name: str,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    waiter: OperationWaiter = Depends(get_operation_waiter),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> None:
    logger.info("DELETE /instances/%s called by '%s'", name, current_user)
    try:
        destroy_instance(name, client, waiter, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(f"deleting Lightsail instance {name}", exc) from exc


@router.post(
    "/{name}/import",
    response_model=InstanceResponse,
    summary="Import an existing instance",
)
def import_existing_instance(
    name: str,
    current_user: str = Depends(get_current_user),
    client=Depends(get_lightsail_client),
    tag_policy: TagPolicy = Depends(get_tag_policy),
    repo: ResourceStateRepository = Depends(get_state_repository),
) -> InstanceResponse:
    logger.info("POST /instances/%s/import called by '%s'", name, current_user)
    try:
        record = import_instance(name, client, tag_policy, repo)
    except (LightsailProviderError, ClientError) as exc:
        raise to_http_error(f"importing Lightsail instance {name}", exc) from exc
    return InstanceResponse(**record)
