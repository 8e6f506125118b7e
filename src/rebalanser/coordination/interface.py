"""
Boundary to the coordination service.

The follower talks to a ZooKeeper-style service through the
CoordinationService protocol and receives one-shot watch notifications
through the Watcher protocol. Implementations own connection management,
session renewal and payload (de)serialization.

Every call returns a ZkResult (or a ZkResponse carrying one) and does not
raise for service-side failures.

Thread Safety:
    Watch notifications may be delivered from the implementation's own
    thread or task, concurrently with calls made by the follower.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from rebalanser.models import ActiveClients, ResourceAssignments, StatusSnapshot
from rebalanser.results import ZkResponse, ZkResult
from rebalanser.types import ClientId, NodePath


class KeeperState(Enum):
    """Session state reported with a watch notification."""

    SYNC_CONNECTED = "sync_connected"
    DISCONNECTED = "disconnected"
    EXPIRED = "expired"


class EventType(Enum):
    """Kind of change that fired a watch."""

    NONE = "none"
    NODE_CREATED = "node_created"
    NODE_DELETED = "node_deleted"
    NODE_DATA_CHANGED = "node_data_changed"
    NODE_CHILDREN_CHANGED = "node_children_changed"


@dataclass(frozen=True)
class WatchedEvent:
    """
    A fired watch.

    Attributes:
        state: Session state when the watch fired
        type: Kind of change
        path: Path of the watched node, None for pure session events
    """

    state: KeeperState
    type: EventType = EventType.NONE
    path: NodePath | None = None


@runtime_checkable
class Watcher(Protocol):
    """Receiver of watch notifications."""

    async def process(self, event: WatchedEvent) -> None:
        """
        Handle one fired watch.

        Must return quickly; heavy work belongs to whoever consumes the
        state the watcher updates.

        Args:
            event: The fired watch
        """
        ...


@runtime_checkable
class CoordinationService(Protocol):
    """
    Protocol for the coordination-service operations a follower needs.

    All watches are one-shot: after firing once they must be armed again
    to observe further changes.
    """

    @abstractmethod
    async def watch_sibling_node(self, path: NodePath, watcher: Watcher) -> ZkResult:
        """
        Arm a one-shot existence watch on a sibling client node.

        Args:
            path: Sibling node path
            watcher: Receiver of the deletion notification

        Returns:
            OK, NO_NODE if the sibling is already gone, or a failure
        """
        ...

    @abstractmethod
    async def watch_status(self, watcher: Watcher) -> ZkResponse[StatusSnapshot]:
        """
        Arm a one-shot data watch on the status node and read it.

        Args:
            watcher: Receiver of the next data change notification

        Returns:
            Response carrying the current StatusSnapshot
        """
        ...

    @abstractmethod
    async def get_active_clients(self) -> ZkResponse[ActiveClients]:
        """
        List the registered client nodes.

        Returns:
            Response carrying the active client paths
        """
        ...

    @abstractmethod
    async def set_follower_as_stopped(self, client_id: ClientId) -> ZkResult:
        """
        Report that this client stopped activity.

        Returns:
            OK, or NODE_ALREADY_EXISTS if already reported
        """
        ...

    @abstractmethod
    async def set_follower_as_started(self, client_id: ClientId) -> ZkResult:
        """
        Report that this client started on its granted resources.

        Returns:
            OK, or NO_NODE if the coordinator no longer expects the report
        """
        ...

    @abstractmethod
    async def get_resources(self) -> ZkResponse[ResourceAssignments]:
        """
        Read the current resource assignments.

        Returns:
            Response carrying the ResourceAssignments
        """
        ...

    @abstractmethod
    async def close_session(self) -> None:
        """
        Close the session.

        Releases this client's ephemeral node and all of its watches.
        """
        ...


__all__ = [
    "KeeperState",
    "EventType",
    "WatchedEvent",
    "Watcher",
    "CoordinationService",
]
