"""
FastAPI dependency for ResourceStateRepository injection.

Routes declare `repo: ResourceStateRepository = Depends(get_state_repository)`
and receive the DynamoDB implementation at runtime.  Tests swap the backend
by overriding this one dependency:

    app.dependency_overrides[get_state_repository] = lambda: InMemoryRepository()
"""

from lightsail_provider.dao.base import ResourceStateRepository
from lightsail_provider.dao.dynamodb import DynamoDBResourceStateRepository

# The table handle is cached lazily and is safe to share across requests.
_repository = DynamoDBResourceStateRepository()


def get_state_repository() -> ResourceStateRepository:
    """Return the active ResourceStateRepository implementation."""
    return _repository
