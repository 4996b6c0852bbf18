"""
Load-balancer attachment service layer.

An attachment is identified by ``"<lb_name>,<instance_name>"``.  It has no
Lightsail object of its own: it exists while the instance appears in the load
balancer's ``instanceHealthSummary``.
"""

import logging
from typing import Optional

from lightsail_provider.cloud import lightsail
from lightsail_provider.cloud.operations import OperationWaiter
from lightsail_provider.dao.base import LB_ATTACHMENT, ResourceStateRepository, resource_key
from lightsail_provider.errors import ResourceNotFoundError

logger = logging.getLogger(__name__)


def attach_instance(
    lb_name: str,
    instance_name: str,
    client,
    waiter: OperationWaiter,
    repo: ResourceStateRepository,
) -> dict:
    """Attach *instance_name* to *lb_name*, wait, then read it back."""
    operation_id = lightsail.attach_instance_to_load_balancer(client, lb_name, instance_name)
    waiter.wait(client, operation_id).raise_for_outcome()

    id_ = lightsail.attachment_id(lb_name, instance_name)
    record = refresh_attachment(id_, client, repo)
    if record is None:
        raise ResourceNotFoundError(
            "reading Lightsail load balancer attachment", id_, "not found after create"
        )
    return record


def refresh_attachment(id_: str, client, repo: ResourceStateRepository) -> Optional[dict]:
    """
    Confirm the attachment still exists and persist it.

    Returns ``None`` and drops the tracked record when either the load
    balancer or the attachment has disappeared.
    """
    key = resource_key(LB_ATTACHMENT, id_)
    try:
        instance_name = lightsail.find_load_balancer_attachment(client, id_)
    except ResourceNotFoundError:
        logger.warning("Lightsail load balancer attachment (%s) not found, removing from state", id_)
        repo.delete(key)
        return None

    lb_name, _ = lightsail.parse_attachment_id(id_)
    record = {
        "resource_id": key,
        "resource_type": LB_ATTACHMENT,
        "id": id_,
        "lb_name": lb_name,
        "instance_name": instance_name,
    }
    repo.save(record)
    return record


def fetch_attachment(id_: str, client, repo: ResourceStateRepository) -> Optional[dict]:
    """Refresh a tracked attachment. Returns ``None`` when untracked or gone."""
    lightsail.parse_attachment_id(id_)
    if repo.get(resource_key(LB_ATTACHMENT, id_)) is None:
        return None
    return refresh_attachment(id_, client, repo)


def detach_instance(
    id_: str,
    client,
    waiter: OperationWaiter,
    repo: ResourceStateRepository,
) -> None:
    """Detach the instance from its load balancer and stop tracking it."""
    lb_name, instance_name = lightsail.parse_attachment_id(id_)
    key = resource_key(LB_ATTACHMENT, id_)
    try:
        operation_id = lightsail.detach_instance_from_load_balancer(client, lb_name, instance_name)
    except ResourceNotFoundError:
        repo.delete(key)
        raise

    waiter.wait(client, operation_id).raise_for_outcome()
    repo.delete(key)
    logger.info("Attachment '%s' removed.", id_)
