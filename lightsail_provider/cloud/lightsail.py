"""
Lightsail helper — thin wrappers around the boto3 ``lightsail`` client.

Functions here issue exactly one API call each (plus response mapping) and
return either an operation id to wait on or a plain dict describing the
resource.  They never wait themselves; the service layer decides when and how
to reconcile operations.

``NotFoundException`` from Lightsail is translated into
`ResourceNotFoundError`; every other `ClientError` propagates unchanged.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import boto3
from botocore.exceptions import ClientError

from lightsail_provider.cloud.operations import first_operation_id
from lightsail_provider.cloud.tags import TagPolicy, from_lightsail, to_lightsail
from lightsail_provider.config import settings
from lightsail_provider.errors import ResourceNotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Lightsail reports this key pair when none was given at create time.
DEFAULT_KEY_PAIR_NAME = "LightsailDefaultKeyPair"
ATTACHMENT_ID_SEPARATOR = ","


def build_lightsail_client():
    """Build a boto3 Lightsail client from application settings."""
    kwargs = {"region_name": settings.aws_region}
    if settings.aws_access_key_id:
        kwargs["aws_access_key_id"] = settings.aws_access_key_id
        kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    if settings.lightsail_endpoint_url:
        kwargs["endpoint_url"] = settings.lightsail_endpoint_url
    return boto3.client("lightsail", **kwargs)


def is_not_found(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "NotFoundException"


@contextmanager
def translate_client_error(action: str, identifier: str) -> Iterator[None]:
    """Re-raise Lightsail ``NotFoundException`` as `ResourceNotFoundError`."""
    try:
        yield
    except ClientError as exc:
        if is_not_found(exc):
            message = exc.response.get("Error", {}).get("Message") or "not found"
            raise ResourceNotFoundError(action, identifier, message) from exc
        logger.error("%s %s failed: %s", action, identifier, exc)
        raise


# ── Instances ─────────────────────────────────────────────────────────────────

def create_instance(
    client,
    name: str,
    availability_zone: str,
    blueprint_id: str,
    bundle_id: str,
    key_pair_name: Optional[str] = None,
    user_data: Optional[str] = None,
    ip_address_type: Optional[str] = None,
    tags: Optional[dict[str, str]] = None,
) -> str:
    """
    Submit a CreateInstances request for a single instance.

    Returns the id of the first operation returned by Lightsail.
    """
    request = {
        "instanceNames": [name],
        "availabilityZone": availability_zone,
        "blueprintId": blueprint_id,
        "bundleId": bundle_id,
    }
    if key_pair_name:
        request["keyPairName"] = key_pair_name
    if user_data:
        request["userData"] = user_data
    if ip_address_type:
        request["ipAddressType"] = ip_address_type
    if tags:
        request["tags"] = to_lightsail(tags)

    logger.info("Creating Lightsail instance %s in %s", name, availability_zone)
    try:
        response = client.create_instances(**request)
    except ClientError as exc:
        logger.error("Failed to create instance %s: %s", name, exc)
        raise
    return first_operation_id(response, "CreateInstance")


def get_instance(client, name: str, tag_policy: TagPolicy) -> Optional[dict]:
    """
    Describe an instance and map it onto the tracked-state attribute set.

    Returns ``None`` when Lightsail answers with an empty body.
    """
    with translate_client_error("reading Lightsail instance", name):
        response = client.get_instance(instanceName=name)

    instance = (response or {}).get("instance")
    if not instance:
        return None
    return instance_to_record(instance, tag_policy)


def instance_to_record(instance: dict, tag_policy: TagPolicy) -> dict:
    """Flatten a Lightsail ``Instance`` structure into a state record."""
    hardware = instance.get("hardware") or {}
    location = instance.get("location") or {}
    ipv6_addresses = list(instance.get("ipv6Addresses") or [])
    created_at = instance.get("createdAt")

    tags_all = tag_policy.filter(from_lightsail(instance.get("tags")))

    return {
        "name": instance.get("name"),
        "availability_zone": location.get("availabilityZone"),
        "blueprint_id": instance.get("blueprintId"),
        "bundle_id": instance.get("bundleId"),
        "key_pair_name": instance.get("sshKeyName"),
        "ip_address_type": instance.get("ipAddressType"),
        "arn": instance.get("arn"),
        "created_at": created_at.isoformat() if created_at is not None else None,
        "cpu_count": hardware.get("cpuCount"),
        "ram_size": hardware.get("ramSizeInGb"),
        # deprecated single-address attribute, kept for older callers
        "ipv6_address": ipv6_addresses[0] if ipv6_addresses else None,
        "ipv6_addresses": ipv6_addresses,
        "is_static_ip": instance.get("isStaticIp"),
        "private_ip_address": instance.get("privateIpAddress"),
        "public_ip_address": instance.get("publicIpAddress"),
        "username": instance.get("username"),
        "tags": tag_policy.remove_defaults(tags_all),
        "tags_all": tags_all,
    }


def delete_instance(client, name: str) -> str:
    """Submit a DeleteInstance request and return the operation id."""
    logger.info("Deleting Lightsail instance %s", name)
    with translate_client_error("deleting Lightsail instance", name):
        response = client.delete_instance(instanceName=name)
    return first_operation_id(response, "DeleteInstance")


def set_ip_address_type(client, name: str, ip_address_type: str) -> str:
    """Switch an instance between ``dualstack`` and ``ipv4`` addressing."""
    logger.info("Setting IP address type of instance %s to %s", name, ip_address_type)
    with translate_client_error("updating Lightsail instance", name):
        response = client.set_ip_address_type(
            resourceType="Instance",
            resourceName=name,
            ipAddressType=ip_address_type,
        )
    return first_operation_id(response, "SetIpAddressType")


def update_tags(client, name: str, to_set: dict[str, str], to_remove: list[str]) -> None:
    """Apply a tag diff: untag removed keys, then tag new/changed ones."""
    with translate_client_error("updating tags of Lightsail instance", name):
        if to_remove:
            logger.info("Removing tags %s from %s", to_remove, name)
            client.untag_resource(resourceName=name, tagKeys=to_remove)
        if to_set:
            logger.info("Setting tags %s on %s", sorted(to_set), name)
            client.tag_resource(resourceName=name, tags=to_lightsail(to_set))


# ── Load-balancer attachments ─────────────────────────────────────────────────

def attachment_id(lb_name: str, instance_name: str) -> str:
    return f"{lb_name}{ATTACHMENT_ID_SEPARATOR}{instance_name}"


def parse_attachment_id(value: str) -> tuple[str, str]:
    """Split ``"<lb_name>,<instance_name>"`` into its two parts."""
    parts = value.split(ATTACHMENT_ID_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise ValidationError(
            f"unexpected format for attachment id ({value}), expected LB_NAME,INSTANCE_NAME"
        )
    return parts[0], parts[1]


def attach_instance_to_load_balancer(client, lb_name: str, instance_name: str) -> str:
    logger.info("Attaching instance %s to load balancer %s", instance_name, lb_name)
    with translate_client_error("attaching to Lightsail load balancer", lb_name):
        response = client.attach_instances_to_load_balancer(
            loadBalancerName=lb_name,
            instanceNames=[instance_name],
        )
    return first_operation_id(response, "AttachInstancesToLoadBalancer")


def detach_instance_from_load_balancer(client, lb_name: str, instance_name: str) -> str:
    logger.info("Detaching instance %s from load balancer %s", instance_name, lb_name)
    with translate_client_error("detaching from Lightsail load balancer", lb_name):
        response = client.detach_instances_from_load_balancer(
            loadBalancerName=lb_name,
            instanceNames=[instance_name],
        )
    return first_operation_id(response, "DetachInstancesFromLoadBalancer")


def find_load_balancer_attachment(client, id_: str) -> str:
    """
    Return the attached instance name for attachment *id_*.

    Raises `ResourceNotFoundError` when the load balancer is gone or the
    instance is no longer among its targets.
    """
    lb_name, instance_name = parse_attachment_id(id_)

    with translate_client_error("reading Lightsail load balancer attachment", id_):
        response = client.get_load_balancer(loadBalancerName=lb_name)

    load_balancer = (response or {}).get("loadBalancer")
    if not load_balancer:
        raise ResourceNotFoundError("reading Lightsail load balancer attachment", id_)

    for summary in load_balancer.get("instanceHealthSummary") or []:
        if summary.get("instanceName") == instance_name:
            return instance_name

    raise ResourceNotFoundError(
        "reading Lightsail load balancer attachment",
        id_,
        f"instance {instance_name} is not attached to {lb_name}",
    )
