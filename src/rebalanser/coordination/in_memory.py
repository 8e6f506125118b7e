"""
In-memory coordination service for testing and local simulation.

Simulates the ZooKeeper primitives the follower relies on: ephemeral
sequential client nodes, a versioned status node, stopped/started barrier
nodes, resource assignments and one-shot watches.

Create one SharedCoordinationState and one InMemoryCoordinationService per
simulated client. The shared state also exposes the coordinator-side
operations (publishing a status, assigning resources, removing clients)
that tests use to drive followers.

Watch notifications are delivered on background asyncio tasks, so they
run concurrently with the follower just as a real client library's
notifications would.

Example:
    >>> state = SharedCoordinationState()
    >>> service = InMemoryCoordinationService("client-a", state)
    >>> path = service.register_client()
    >>> state.set_status(RebalancingStatus.STOP_ACTIVITY)
    >>> await state.drain()
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field

from rebalanser.coordination.interface import (
    EventType,
    KeeperState,
    WatchedEvent,
    Watcher,
)
from rebalanser.models import (
    ActiveClients,
    RebalancingStatus,
    ResourceAssignments,
    StatusSnapshot,
)
from rebalanser.results import ZkResponse, ZkResult
from rebalanser.types import ClientId, NodePath, ResourceId, Version

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "/rebalanser"


@dataclass
class _WatchRegistration:
    session: InMemoryCoordinationService
    watcher: Watcher


@dataclass
class SharedCoordinationState:
    """
    Server-side state shared by every simulated client session.

    Attributes:
        root: Root path of the rebalancing group
        clients: Registered client node paths mapped to their client ids
        status_value: Wire value of the status node
        status_version: Data version of the status node
        stopped: Client ids that reported stopped, None if the barrier node is absent
        started: Client ids that reported started, None if the barrier node is absent
        assignments: Current resource assignments
    """

    root: str = DEFAULT_ROOT
    clients: dict[NodePath, ClientId] = field(default_factory=dict)
    status_value: str = RebalancingStatus.START_CONFIRMED.value
    status_version: Version = 0
    stopped: set[ClientId] | None = field(default_factory=set)
    started: set[ClientId] | None = field(default_factory=set)
    assignments: ResourceAssignments = field(default_factory=ResourceAssignments)

    _next_sequence: int = field(default=1, repr=False)
    _sibling_watches: dict[NodePath, list[_WatchRegistration]] = field(
        default_factory=dict, repr=False
    )
    _status_watches: list[_WatchRegistration] = field(default_factory=list, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _background_tasks: set[asyncio.Task[None]] = field(default_factory=set, repr=False)

    @property
    def clients_path(self) -> NodePath:
        return f"{self.root}/clients"

    @property
    def status_path(self) -> NodePath:
        return f"{self.root}/status"

    # -------------------------------------------------------------------------
    # Coordinator-side operations
    # -------------------------------------------------------------------------

    def set_status(self, status: RebalancingStatus | str) -> Version:
        """
        Publish a new status value, firing every armed status watch.

        Publishing StopActivity resets the stopped barrier; publishing
        ResourcesGranted resets the started barrier.

        Args:
            status: New phase, or a raw wire value

        Returns:
            The new status node version
        """
        value = status.value if isinstance(status, RebalancingStatus) else status
        with self._lock:
            self.status_value = value
            self.status_version += 1
            if value == RebalancingStatus.STOP_ACTIVITY.value:
                self.stopped = set()
            elif value == RebalancingStatus.RESOURCES_GRANTED.value:
                self.started = set()
            watches = self._status_watches
            self._status_watches = []
            version = self.status_version

        logger.debug(
            "Status published",
            extra={"status": value, "version": version, "watch_count": len(watches)},
        )
        event = WatchedEvent(
            state=KeeperState.SYNC_CONNECTED,
            type=EventType.NODE_DATA_CHANGED,
            path=self.status_path,
        )
        for registration in watches:
            self._notify(registration.watcher, event)
        return version

    def set_assignments(self, mapping: dict[ClientId, list[ResourceId]]) -> None:
        """Replace the resource assignments."""
        with self._lock:
            self.assignments = ResourceAssignments.from_mapping(mapping)

    def remove_barrier_nodes(self) -> None:
        """Delete the stopped and started barrier nodes."""
        with self._lock:
            self.stopped = None
            self.started = None

    def remove_client(self, path: NodePath) -> None:
        """
        Delete a client node, firing any watches armed on it.

        Args:
            path: Client node path
        """
        with self._lock:
            if self.clients.pop(path, None) is None:
                return
            watches = self._sibling_watches.pop(path, [])

        event = WatchedEvent(
            state=KeeperState.SYNC_CONNECTED,
            type=EventType.NODE_DELETED,
            path=path,
        )
        for registration in watches:
            self._notify(registration.watcher, event)

    async def drain(self) -> None:
        """Wait until every notification delivered so far has been processed."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Session-side operations, used by InMemoryCoordinationService
    # -------------------------------------------------------------------------

    def _create_client_node(self, client_id: ClientId) -> NodePath:
        with self._lock:
            path = f"{self.clients_path}/c_{self._next_sequence:010d}"
            self._next_sequence += 1
            self.clients[path] = client_id
        return path

    def _add_sibling_watch(self, path: NodePath, registration: _WatchRegistration) -> bool:
        with self._lock:
            if path not in self.clients:
                return False
            self._sibling_watches.setdefault(path, []).append(registration)
            return True

    def _add_status_watch(self, registration: _WatchRegistration) -> StatusSnapshot:
        with self._lock:
            self._status_watches.append(registration)
            return StatusSnapshot(
                version=self.status_version,
                rebalancing_status=RebalancingStatus.parse(self.status_value),
            )

    def _drop_session(self, session: InMemoryCoordinationService) -> list[Watcher]:
        """Remove a session's node and watches, returning its distinct watchers."""
        with self._lock:
            watchers: list[Watcher] = []
            for path, registrations in list(self._sibling_watches.items()):
                kept = [r for r in registrations if r.session is not session]
                watchers.extend(r.watcher for r in registrations if r.session is session)
                self._sibling_watches[path] = kept
            watchers.extend(r.watcher for r in self._status_watches if r.session is session)
            self._status_watches = [r for r in self._status_watches if r.session is not session]
            own_path = session.own_path

        if own_path is not None:
            self.remove_client(own_path)

        distinct: list[Watcher] = []
        for watcher in watchers:
            if not any(w is watcher for w in distinct):
                distinct.append(watcher)
        return distinct

    def _notify(self, watcher: Watcher, event: WatchedEvent) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(watcher, event))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _deliver(self, watcher: Watcher, event: WatchedEvent) -> None:
        try:
            await watcher.process(event)
        except Exception as e:
            logger.error(
                "Watcher failed to process event",
                extra={"path": event.path, "error": str(e)},
                exc_info=True,
            )


class InMemoryCoordinationService:
    """
    One simulated client session against a SharedCoordinationState.

    Satisfies the CoordinationService protocol. Failures can be injected
    per operation with fail_next().

    Attributes:
        client_id: Identity of the simulated client
        shared: Server-side state shared with other sessions
    """

    def __init__(self, client_id: ClientId, shared: SharedCoordinationState) -> None:
        self.client_id = client_id
        self.shared = shared
        self.own_path: NodePath | None = None
        self._expired = False
        self._closed = False
        self._injected: dict[str, list[ZkResult]] = {}
        self.calls: list[str] = []

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_expired(self) -> bool:
        return self._expired

    def register_client(self) -> NodePath:
        """
        Create this session's ephemeral sequential client node.

        Returns:
            Path of the new node
        """
        self.own_path = self.shared._create_client_node(self.client_id)
        return self.own_path

    def fail_next(self, operation: str, result: ZkResult) -> None:
        """
        Make the next call of an operation return a failure.

        Args:
            operation: Method name, e.g. "set_follower_as_stopped"
            result: ZkResult to return instead of performing the call
        """
        if not hasattr(CoordinationOperations, operation.upper()):
            raise ValueError(f"Unknown coordination operation: {operation}")
        self._injected.setdefault(operation, []).append(result)

    def expire_session(self) -> None:
        """
        Simulate session expiry.

        Every watcher of this session is told the session expired, the
        client node is removed and all later calls return SESSION_EXPIRED.
        """
        self._expired = True
        watchers = self.shared._drop_session(self)
        event = WatchedEvent(state=KeeperState.EXPIRED)
        for watcher in watchers:
            self.shared._notify(watcher, event)

    def _check(self, operation: str) -> ZkResult:
        self.calls.append(operation)
        injected = self._injected.get(operation)
        if injected:
            return injected.pop(0)
        if self._expired:
            return ZkResult.SESSION_EXPIRED
        if self._closed:
            return ZkResult.CONNECTION_LOST
        return ZkResult.OK

    async def watch_sibling_node(self, path: NodePath, watcher: Watcher) -> ZkResult:
        result = self._check(CoordinationOperations.WATCH_SIBLING_NODE)
        if result is not ZkResult.OK:
            return result
        if not self.shared._add_sibling_watch(path, _WatchRegistration(self, watcher)):
            return ZkResult.NO_NODE
        return ZkResult.OK

    async def watch_status(self, watcher: Watcher) -> ZkResponse[StatusSnapshot]:
        result = self._check(CoordinationOperations.WATCH_STATUS)
        if result is not ZkResult.OK:
            return ZkResponse.failed(result)
        return ZkResponse.ok(self.shared._add_status_watch(_WatchRegistration(self, watcher)))

    async def get_active_clients(self) -> ZkResponse[ActiveClients]:
        result = self._check(CoordinationOperations.GET_ACTIVE_CLIENTS)
        if result is not ZkResult.OK:
            return ZkResponse.failed(result)
        with self.shared._lock:
            paths = list(self.shared.clients)
        return ZkResponse.ok(ActiveClients(client_paths=paths))

    async def set_follower_as_stopped(self, client_id: ClientId) -> ZkResult:
        result = self._check(CoordinationOperations.SET_FOLLOWER_AS_STOPPED)
        if result is not ZkResult.OK:
            return result
        with self.shared._lock:
            if self.shared.stopped is None:
                return ZkResult.NO_NODE
            if client_id in self.shared.stopped:
                return ZkResult.NODE_ALREADY_EXISTS
            self.shared.stopped.add(client_id)
        return ZkResult.OK

    async def set_follower_as_started(self, client_id: ClientId) -> ZkResult:
        result = self._check(CoordinationOperations.SET_FOLLOWER_AS_STARTED)
        if result is not ZkResult.OK:
            return result
        with self.shared._lock:
            if self.shared.started is None:
                return ZkResult.NO_NODE
            if client_id in self.shared.started:
                return ZkResult.NODE_ALREADY_EXISTS
            self.shared.started.add(client_id)
        return ZkResult.OK

    async def get_resources(self) -> ZkResponse[ResourceAssignments]:
        result = self._check(CoordinationOperations.GET_RESOURCES)
        if result is not ZkResult.OK:
            return ZkResponse.failed(result)
        with self.shared._lock:
            return ZkResponse.ok(self.shared.assignments)

    async def close_session(self) -> None:
        self.calls.append(CoordinationOperations.CLOSE_SESSION)
        if self._closed:
            return
        self._closed = True
        self.shared._drop_session(self)
        logger.info("Session closed", extra={"client_id": self.client_id})


class CoordinationOperations:
    """Operation names accepted by InMemoryCoordinationService.fail_next()."""

    WATCH_SIBLING_NODE = "watch_sibling_node"
    WATCH_STATUS = "watch_status"
    GET_ACTIVE_CLIENTS = "get_active_clients"
    SET_FOLLOWER_AS_STOPPED = "set_follower_as_stopped"
    SET_FOLLOWER_AS_STARTED = "set_follower_as_started"
    GET_RESOURCES = "get_resources"
    CLOSE_SESSION = "close_session"


__all__ = [
    "DEFAULT_ROOT",
    "SharedCoordinationState",
    "InMemoryCoordinationService",
    "CoordinationOperations",
]
