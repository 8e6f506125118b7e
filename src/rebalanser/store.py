"""
Local store of the resources currently assigned to this client.

The follower is the only writer. Any number of application threads may
read; each read sees either the previous or the new resource set in full,
never a mix of both.

Example:
    >>> store = ResourceGroupStore()
    >>> store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, ["r1", "r2"])
    >>> store.get_resources().resources
    ['r1', 'r2']
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum

from rebalanser.types import ResourceId

logger = logging.getLogger(__name__)


class AssignmentStatus(Enum):
    """
    Assignment state of the local resource group.

    Attributes:
        RESOURCES_ASSIGNED: The coordinator granted this client its resources
        NO_RESOURCES_ASSIGNED: The coordinator granted this client nothing
        NO_ASSIGNMENT_YET: No rebalancing has completed since startup
    """

    RESOURCES_ASSIGNED = "resources_assigned"
    NO_RESOURCES_ASSIGNED = "no_resources_assigned"
    NO_ASSIGNMENT_YET = "no_assignment_yet"


@dataclass(frozen=True)
class SetResourcesRequest:
    """Replacement resource set for the store."""

    assignment_status: AssignmentStatus
    resources: tuple[ResourceId, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class GetResourcesResponse:
    """Snapshot of the store at the time of the read."""

    assignment_status: AssignmentStatus
    resources: list[ResourceId] = field(default_factory=list)


class ResourceGroupStore:
    """
    Thread-safe holder of the current resource assignment.

    Writes replace the whole set under a lock; reads return copies.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._assignment_status = AssignmentStatus.NO_ASSIGNMENT_YET
        self._resources: tuple[ResourceId, ...] = ()

    def set_resources(self, request: SetResourcesRequest) -> None:
        """
        Replace the stored resource set.

        Args:
            request: New status and resources
        """
        with self._lock:
            self._assignment_status = request.assignment_status
            self._resources = tuple(request.resources)

        logger.debug(
            "Resource group replaced",
            extra={
                "assignment_status": request.assignment_status.value,
                "resource_count": len(request.resources),
            },
        )

    def replace_resources(
        self,
        assignment_status: AssignmentStatus,
        resources: list[ResourceId],
    ) -> None:
        """Replace the stored resource set from a status and list."""
        self.set_resources(
            SetResourcesRequest(assignment_status=assignment_status, resources=tuple(resources))
        )

    def get_resources(self) -> GetResourcesResponse:
        """Get a snapshot of the current assignment."""
        with self._lock:
            return GetResourcesResponse(
                assignment_status=self._assignment_status,
                resources=list(self._resources),
            )

    @property
    def assignment_status(self) -> AssignmentStatus:
        with self._lock:
            return self._assignment_status


__all__ = [
    "AssignmentStatus",
    "SetResourcesRequest",
    "GetResourcesResponse",
    "ResourceGroupStore",
]
