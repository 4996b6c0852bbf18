"""
FastAPI dependencies for the Lightsail collaborators.

The boto3 client is built once and shared by every request (boto3 clients
are thread-safe for concurrent calls).  The waiter and tag policy are plain
values derived from settings.  Each can be overridden in tests:

    app.dependency_overrides[get_lightsail_client] = lambda: FakeLightsailClient()
    app.dependency_overrides[get_operation_waiter] = lambda: OperationWaiter(sleep=...)
"""

from functools import lru_cache

from lightsail_provider.cloud.lightsail import build_lightsail_client
from lightsail_provider.cloud.operations import OperationWaiter
from lightsail_provider.cloud.tags import TagPolicy
from lightsail_provider.config import settings


@lru_cache(maxsize=1)
def get_lightsail_client():
    """Return the shared boto3 Lightsail client."""
    return build_lightsail_client()


def get_operation_waiter() -> OperationWaiter:
    return OperationWaiter.from_settings(settings)


def get_tag_policy() -> TagPolicy:
    return TagPolicy(
        default_tags=dict(settings.default_tags),
        ignore_keys=frozenset(settings.ignore_tag_keys),
        ignore_key_prefixes=tuple(settings.ignore_tag_key_prefixes),
    )
