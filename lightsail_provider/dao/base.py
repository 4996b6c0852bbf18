"""
Abstract DAO (Data Access Object) for tracked resource state.

`ResourceStateRepository` is the persistence contract the CRUD handlers depend
on.  Each record is the last successfully read state of one managed Lightsail
resource, keyed by ``resource_id`` (``"<resource_type>/<identifier>"``).

Concrete implementations (DynamoDB, in-memory for tests, …) must fulfil this
interface without the services or routers knowing which backend is in use.
"""

from abc import ABC, abstractmethod
from typing import Optional

INSTANCE = "instance"
LB_ATTACHMENT = "lb_attachment"


def resource_key(resource_type: str, identifier: str) -> str:
    """Build the ``resource_id`` partition key for a tracked resource."""
    return f"{resource_type}/{identifier}"


class ResourceStateRepository(ABC):
    """Persistence interface for tracked resource state records."""

    @abstractmethod
    def save(self, record: dict) -> None:
        """
        Persist a state record.

        Parameters
        ----------
        record : dict
            Must contain ``resource_id`` and ``resource_type`` string keys.
            An existing record with the same ``resource_id`` is replaced.
        """

    @abstractmethod
    def get(self, resource_id: str) -> Optional[dict]:
        """Return the record for *resource_id*, or ``None``."""

    @abstractmethod
    def list_all(self, resource_type: Optional[str] = None) -> list[dict]:
        """Return every stored record, optionally only one resource type."""

    @abstractmethod
    def delete(self, resource_id: str) -> bool:
        """
        Stop tracking *resource_id*.

        Returns ``True`` if the record existed and was removed.
        """
