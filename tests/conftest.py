import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

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
from lightsail_provider.main import app

DEFAULT_TAGS = {"Owner": "platform"}


def client_error(code: str, operation: str, status: int = 400, message: str = "") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message or code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def not_found(operation: str, what: str) -> ClientError:
    return client_error("NotFoundException", operation, 404, f"{what} does not exist")


class FakeLightsailClient:
    """
    In-memory stand-in for the boto3 Lightsail client.

    New operations follow ``operation_statuses``; an entry that is an
    exception is raised from ``get_operation`` instead of returned.  The last
    entry repeats forever.
    """

    def __init__(self) -> None:
        self.instances: dict[str, dict] = {}
        self.load_balancers: dict[str, list[str]] = {}
        self.operations: dict[str, list] = {}
        self.operation_statuses: list = ["Started", "Succeeded"]
        self.calls: list[tuple[str, dict]] = []
        self._op_counter = 0

    # ── operations ────────────────────────────────────────────────────────────

    def _new_operation(self) -> dict:
        self._op_counter += 1
        op_id = f"op-{self._op_counter}"
        self.operations[op_id] = list(self.operation_statuses)
        return {"id": op_id, "status": "Started"}

    def get_operation(self, operationId: str) -> dict:
        self.calls.append(("get_operation", {"operationId": operationId}))
        script = self.operations.get(operationId)
        if script is None:
            raise not_found("GetOperation", operationId)
        entry = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, dict):
            return {"operation": {"id": operationId, **entry}}
        return {"operation": {"id": operationId, "status": entry}}

    # ── instances ─────────────────────────────────────────────────────────────

    def create_instances(self, **kwargs) -> dict:
        self.calls.append(("create_instances", kwargs))
        operations = []
        for name in kwargs["instanceNames"]:
            self.instances[name] = {
                "name": name,
                "arn": f"arn:aws:lightsail:us-east-1:123456789012:Instance/{name}",
                "createdAt": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
                "location": {
                    "availabilityZone": kwargs["availabilityZone"],
                    "regionName": kwargs["availabilityZone"][:-1],
                },
                "blueprintId": kwargs["blueprintId"],
                "bundleId": kwargs["bundleId"],
                "hardware": {"cpuCount": 2, "ramSizeInGb": 0.5},
                "ipAddressType": kwargs.get("ipAddressType", "dualstack"),
                "ipv6Addresses": ["2600:1f18::10"],
                "isStaticIp": False,
                "privateIpAddress": "172.26.0.10",
                "publicIpAddress": "3.80.0.10",
                "username": "ec2-user",
                "sshKeyName": kwargs.get("keyPairName", "LightsailDefaultKeyPair"),
                "tags": list(kwargs.get("tags", [])),
            }
            operations.append(self._new_operation())
        return {"operations": operations}

    def get_instance(self, instanceName: str) -> dict:
        self.calls.append(("get_instance", {"instanceName": instanceName}))
        if instanceName not in self.instances:
            raise not_found("GetInstance", instanceName)
        return {"instance": self.instances[instanceName]}

    def delete_instance(self, instanceName: str) -> dict:
        self.calls.append(("delete_instance", {"instanceName": instanceName}))
        if instanceName not in self.instances:
            raise not_found("DeleteInstance", instanceName)
        del self.instances[instanceName]
        return {"operations": [self._new_operation()]}

    def set_ip_address_type(self, **kwargs) -> dict:
        self.calls.append(("set_ip_address_type", kwargs))
        name = kwargs["resourceName"]
        if name not in self.instances:
            raise not_found("SetIpAddressType", name)
        self.instances[name]["ipAddressType"] = kwargs["ipAddressType"]
        return {"operations": [self._new_operation()]}

    def tag_resource(self, resourceName: str, tags: list[dict]) -> dict:
        self.calls.append(("tag_resource", {"resourceName": resourceName, "tags": tags}))
        current = {t["key"]: t["value"] for t in self.instances[resourceName]["tags"]}
        current.update({t["key"]: t["value"] for t in tags})
        self.instances[resourceName]["tags"] = [{"key": k, "value": v} for k, v in current.items()]
        return {"operations": [self._new_operation()]}

    def untag_resource(self, resourceName: str, tagKeys: list[str]) -> dict:
        self.calls.append(("untag_resource", {"resourceName": resourceName, "tagKeys": tagKeys}))
        self.instances[resourceName]["tags"] = [
            t for t in self.instances[resourceName]["tags"] if t["key"] not in tagKeys
        ]
        return {"operations": [self._new_operation()]}

    # ── load balancers ────────────────────────────────────────────────────────

    def get_load_balancer(self, loadBalancerName: str) -> dict:
        self.calls.append(("get_load_balancer", {"loadBalancerName": loadBalancerName}))
        if loadBalancerName not in self.load_balancers:
            raise not_found("GetLoadBalancer", loadBalancerName)
        return {
            "loadBalancer": {
                "name": loadBalancerName,
                "instanceHealthSummary": [
                    {"instanceName": n, "instanceHealth": "healthy"}
                    for n in self.load_balancers[loadBalancerName]
                ],
            }
        }

    def attach_instances_to_load_balancer(self, loadBalancerName: str, instanceNames: list[str]) -> dict:
        self.calls.append(
            ("attach_instances_to_load_balancer", {"loadBalancerName": loadBalancerName, "instanceNames": instanceNames})
        )
        if loadBalancerName not in self.load_balancers:
            raise not_found("AttachInstancesToLoadBalancer", loadBalancerName)
        self.load_balancers[loadBalancerName].extend(instanceNames)
        return {"operations": [self._new_operation()]}

    def detach_instances_from_load_balancer(self, loadBalancerName: str, instanceNames: list[str]) -> dict:
        self.calls.append(
            ("detach_instances_from_load_balancer", {"loadBalancerName": loadBalancerName, "instanceNames": instanceNames})
        )
        if loadBalancerName not in self.load_balancers:
            raise not_found("DetachInstancesFromLoadBalancer", loadBalancerName)
        self.load_balancers[loadBalancerName] = [
            n for n in self.load_balancers[loadBalancerName] if n not in instanceNames
        ]
        return {"operations": [self._new_operation()]}

    def delete_load_balancer(self, loadBalancerName: str) -> dict:
        self.load_balancers.pop(loadBalancerName, None)
        return {"operations": [self._new_operation()]}

    def called(self, method: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == method]


class InMemoryRepository(ResourceStateRepository):
    def __init__(self) -> None:
        self.store: dict[str, dict] = {}

    def save(self, record: dict) -> None:
        self.store[record["resource_id"]] = dict(record)

    def get(self, resource_id: str) -> Optional[dict]:
        record = self.store.get(resource_id)
        return dict(record) if record is not None else None

    def list_all(self, resource_type: Optional[str] = None) -> list[dict]:
        return [
            dict(r)
            for r in self.store.values()
            if resource_type is None or r["resource_type"] == resource_type
        ]

    def delete(self, resource_id: str) -> bool:
        return self.store.pop(resource_id, None) is not None


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def lightsail():
    return FakeLightsailClient()


@pytest.fixture()
def repo():
    return InMemoryRepository()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def waiter(clock):
    return OperationWaiter(
        timeout=60,
        initial_delay=5,
        poll_interval=3,
        max_poll_interval=10,
        backoff_factor=1.5,
        max_transient_retries=3,
        sleep=clock.sleep,
        clock=clock,
    )


@pytest.fixture()
def tag_policy():
    return TagPolicy(default_tags=dict(DEFAULT_TAGS))


@pytest.fixture()
def client(lightsail, repo, waiter, tag_policy):
    app.dependency_overrides[get_current_user] = lambda: "test-user"
    app.dependency_overrides[get_lightsail_client] = lambda: lightsail
    app.dependency_overrides[get_operation_waiter] = lambda: waiter
    app.dependency_overrides[get_tag_policy] = lambda: tag_policy
    app.dependency_overrides[get_state_repository] = lambda: repo
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
