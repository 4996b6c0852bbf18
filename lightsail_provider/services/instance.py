"""
Instance service layer — CRUD handlers for Lightsail instances.

Every handler receives its collaborators explicitly: the boto3 Lightsail
``client``, the `OperationWaiter`, the `TagPolicy` and the
`ResourceStateRepository` (all injected by the router via FastAPI
dependencies).

Each mutating handler follows the same shape: build the request → call
Lightsail → wait on the returned operation → re-read the instance → persist
the fresh state.  Tracked state is only ever written from a successful read.
"""

import logging
from typing import Optional

from botocore.exceptions import ClientError

from lightsail_provider.cloud import lightsail
from lightsail_provider.cloud.operations import OperationWaiter
from lightsail_provider.cloud.tags import TagPolicy, diff_tags
from lightsail_provider.dao.base import INSTANCE, ResourceStateRepository, resource_key
from lightsail_provider.errors import OperationError, ResourceNotFoundError, TransientAPIError
from lightsail_provider.schemas.instance import CreateInstanceRequest, UpdateInstanceRequest

logger = logging.getLogger(__name__)

_KEEP = object()


def provision_instance(
    request: CreateInstanceRequest,
    client,
    waiter: OperationWaiter,
    tag_policy: TagPolicy,
    repo: ResourceStateRepository,
) -> dict:
    """
    Create an instance and return its freshly read state.

    A wait that does not succeed is only logged: the instance was accepted by
    Lightsail and may still become usable.
    """
    name = request.name
    operation_id = lightsail.create_instance(
        client,
        name=name,
        availability_zone=request.availability_zone,
        blueprint_id=request.blueprint_id,
        bundle_id=request.bundle_id,
        key_pair_name=request.key_pair_name,
        user_data=request.user_data,
        ip_address_type=request.ip_address_type,
        tags=tag_policy.merge(request.tags),
    )

    try:
        waiter.wait(client, operation_id).raise_for_outcome()
    except (OperationError, TransientAPIError, ClientError) as exc:
        logger.warning("Error waiting for instance (%s) to become ready: %s", name, exc)

    record = refresh_instance(name, client, tag_policy, repo, user_data=request.user_data)
    if record is None:
        raise ResourceNotFoundError("reading Lightsail instance", name, "not found after create")
    logger.info("Instance '%s' provisioned and tracked.", name)
    return record


def refresh_instance(
    name: str,
    client,
    tag_policy: TagPolicy,
    repo: ResourceStateRepository,
    user_data=_KEEP,
) -> Optional[dict]:
    """
    Read the instance from Lightsail and overwrite its tracked state.

    Returns ``None`` (and drops the tracked record) when the instance no
    longer exists.  Any other error propagates unchanged.
    """
    key = resource_key(INSTANCE, name)
    try:
        record = lightsail.get_instance(client, name, tag_policy)
    except ResourceNotFoundError:
        record = None

    if record is None:
        logger.warning("Lightsail Instance (%s) not found, removing from state", name)
        repo.delete(key)
        return None

    if user_data is _KEEP:
        # never returned by the API; carried over from the last known state
        previous = repo.get(key) or {}
        user_data = previous.get("user_data")
    record["user_data"] = user_data
    record["resource_id"] = key
    record["resource_type"] = INSTANCE
    repo.save(record)
    return record


def fetch_instance(
    name: str, client, tag_policy: TagPolicy, repo: ResourceStateRepository
) -> Optional[dict]:
    """Refresh a tracked instance. Returns ``None`` when untracked or gone."""
    if repo.get(resource_key(INSTANCE, name)) is None:
        return None
    return refresh_instance(name, client, tag_policy, repo)


def fetch_all_instances(repo: ResourceStateRepository) -> list[dict]:
    """Return tracked instance records as stored (no Lightsail calls)."""
    return repo.list_all(INSTANCE)


def import_instance(
    name: str, client, tag_policy: TagPolicy, repo: ResourceStateRepository
) -> dict:
    """Start tracking an instance that already exists in Lightsail."""
    record = refresh_instance(name, client, tag_policy, repo, user_data=None)
    if record is None:
        raise ResourceNotFoundError("importing Lightsail instance", name)
    logger.info("Imported instance '%s'.", name)
    return record


def modify_instance(
    name: str,
    request: UpdateInstanceRequest,
    client,
    waiter: OperationWaiter,
    tag_policy: TagPolicy,
    repo: ResourceStateRepository,
) -> dict:
    """
    Apply changes to the mutable attributes (IP address type, tags).

    Unlike create, a wait that does not succeed fails the update.
    """
    current = repo.get(resource_key(INSTANCE, name))
    if current is None:
        raise ResourceNotFoundError("updating Lightsail instance", name, "not tracked")

    if request.ip_address_type is not None and request.ip_address_type != current.get(
        "ip_address_type"
    ):
        operation_id = lightsail.set_ip_address_type(client, name, request.ip_address_type)
        waiter.wait(client, operation_id).raise_for_outcome()

    # defaults may have changed even when the resource tags did not
    resource_tags = request.tags if request.tags is not None else current.get("tags")
    to_set, to_remove = diff_tags(current.get("tags_all") or {}, tag_policy.merge(resource_tags))
    if to_set or to_remove:
        lightsail.update_tags(client, name, to_set, to_remove)

    record = refresh_instance(name, client, tag_policy, repo)
    if record is None:
        raise ResourceNotFoundError("updating Lightsail instance", name)
    return record


def destroy_instance(
    name: str,
    client,
    waiter: OperationWaiter,
    repo: ResourceStateRepository,
) -> None:
    """
    Delete the instance and stop tracking it.

    Raises `ResourceNotFoundError` when Lightsail does not know the instance,
    and `OperationFailedError` / `OperationTimeoutError` when the deletion
    is not confirmed.
    """
    key = resource_key(INSTANCE, name)
    try:
        operation_id = lightsail.delete_instance(client, name)
    except ResourceNotFoundError:
        repo.delete(key)
        raise

    try:
        waiter.wait(client, operation_id).raise_for_outcome()
    except OperationError as exc:
        logger.error("Error waiting for instance (%s) to become destroyed: %s", name, exc)
        raise

    repo.delete(key)
    logger.info("Instance '%s' deleted.", name)
