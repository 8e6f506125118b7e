"""
Unit tests for the in-memory coordination service.

Tests for:
- Sequential client node registration
- One-shot sibling and status watches
- Barrier node reports (stopped / started)
- Failure injection, session expiry and session close
"""

from __future__ import annotations

import pytest

from rebalanser.coordination import (
    CoordinationService,
    EventType,
    InMemoryCoordinationService,
    KeeperState,
    SharedCoordinationState,
    WatchedEvent,
    Watcher,
)
from rebalanser.models import RebalancingStatus
from rebalanser.results import ZkResult


class RecordingWatcher:
    """Watcher that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[WatchedEvent] = []

    async def process(self, event: WatchedEvent) -> None:
        self.events.append(event)


class TestProtocolCompliance:
    """The in-memory service satisfies the boundary protocols."""

    def test_service_is_coordination_service(self, service):
        assert isinstance(service, CoordinationService)

    def test_recording_watcher_is_watcher(self):
        assert isinstance(RecordingWatcher(), Watcher)


class TestClientRegistration:
    """Tests for sequential client nodes."""

    def test_paths_are_sequential_and_fixed_width(self, shared_state):
        first = InMemoryCoordinationService("a", shared_state).register_client()
        second = InMemoryCoordinationService("b", shared_state).register_client()
        assert first == "/rebalanser/clients/c_0000000001"
        assert second == "/rebalanser/clients/c_0000000002"
        assert shared_state.clients == {first: "a", second: "b"}

    @pytest.mark.asyncio
    async def test_get_active_clients(self, shared_state):
        session = InMemoryCoordinationService("a", shared_state)
        path = session.register_client()
        response = await session.get_active_clients()
        assert response.is_ok
        assert response.data.client_paths == [path]


class TestWatches:
    """Tests for one-shot watches."""

    @pytest.mark.asyncio
    async def test_sibling_watch_fires_once_on_delete(self, shared_state, service):
        other = InMemoryCoordinationService("b", shared_state)
        other_path = other.register_client()
        watcher = RecordingWatcher()

        assert await service.watch_sibling_node(other_path, watcher) is ZkResult.OK
        shared_state.remove_client(other_path)
        await shared_state.drain()

        assert watcher.events == [
            WatchedEvent(KeeperState.SYNC_CONNECTED, EventType.NODE_DELETED, other_path)
        ]

    @pytest.mark.asyncio
    async def test_watch_on_missing_node(self, service):
        result = await service.watch_sibling_node(
            "/rebalanser/clients/c_0000000099", RecordingWatcher()
        )
        assert result is ZkResult.NO_NODE

    @pytest.mark.asyncio
    async def test_status_watch_reads_current_value(self, shared_state, service):
        shared_state.set_status(RebalancingStatus.STOP_ACTIVITY)
        response = await service.watch_status(RecordingWatcher())
        assert response.is_ok
        assert response.data.version == 1
        assert response.data.rebalancing_status is RebalancingStatus.STOP_ACTIVITY

    @pytest.mark.asyncio
    async def test_status_watch_is_one_shot(self, shared_state, service):
        watcher = RecordingWatcher()
        await service.watch_status(watcher)

        shared_state.set_status(RebalancingStatus.STOP_ACTIVITY)
        shared_state.set_status(RebalancingStatus.RESOURCES_GRANTED)
        await shared_state.drain()

        assert len(watcher.events) == 1
        assert watcher.events[0].type is EventType.NODE_DATA_CHANGED
        assert watcher.events[0].path == "/rebalanser/status"

    @pytest.mark.asyncio
    async def test_raw_status_value(self, shared_state, service):
        shared_state.set_status("Rewinding")
        response = await service.watch_status(RecordingWatcher())
        assert response.data.rebalancing_status is RebalancingStatus.UNRECOGNIZED


class TestBarrierReports:
    """Tests for stopped and started reports."""

    @pytest.mark.asyncio
    async def test_duplicate_stop_report(self, service):
        assert await service.set_follower_as_stopped("client-a") is ZkResult.OK
        assert await service.set_follower_as_stopped("client-a") is ZkResult.NODE_ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_stop_activity_resets_stopped_barrier(self, shared_state, service):
        await service.set_follower_as_stopped("client-a")
        shared_state.set_status(RebalancingStatus.STOP_ACTIVITY)
        assert await service.set_follower_as_stopped("client-a") is ZkResult.OK

    @pytest.mark.asyncio
    async def test_missing_barrier_nodes(self, shared_state, service):
        shared_state.remove_barrier_nodes()
        assert await service.set_follower_as_started("client-a") is ZkResult.NO_NODE
        assert await service.set_follower_as_stopped("client-a") is ZkResult.NO_NODE

    @pytest.mark.asyncio
    async def test_resources(self, shared_state, service):
        shared_state.set_assignments({"client-a": ["r1", "r2"], "client-b": ["r3"]})
        response = await service.get_resources()
        assert response.data.resources_for("client-a") == ["r1", "r2"]


class TestFailureInjection:
    """Tests for fail_next()."""

    @pytest.mark.asyncio
    async def test_fail_next_applies_once(self, service):
        service.fail_next("get_resources", ZkResult.CONNECTION_LOST)
        assert (await service.get_resources()).result is ZkResult.CONNECTION_LOST
        assert (await service.get_resources()).is_ok

    def test_unknown_operation(self, service):
        with pytest.raises(ValueError):
            service.fail_next("delete_everything", ZkResult.TIMEOUT)


class TestSessionLifecycle:
    """Tests for session expiry and close."""

    @pytest.mark.asyncio
    async def test_expire_notifies_own_watchers_and_siblings(self, shared_state, service):
        other = InMemoryCoordinationService("b", shared_state)
        other.register_client()
        own_watcher = RecordingWatcher()
        other_watcher = RecordingWatcher()
        await service.watch_status(own_watcher)
        await other.watch_sibling_node(service.own_path, other_watcher)

        service.expire_session()
        await shared_state.drain()

        assert [e.state for e in own_watcher.events] == [KeeperState.EXPIRED]
        assert [e.type for e in other_watcher.events] == [EventType.NODE_DELETED]
        assert service.own_path not in shared_state.clients
        assert (await service.get_active_clients()).result is ZkResult.SESSION_EXPIRED

    @pytest.mark.asyncio
    async def test_close_session_removes_node_and_watches(self, shared_state, service):
        watcher = RecordingWatcher()
        await service.watch_status(watcher)

        await service.close_session()
        shared_state.set_status(RebalancingStatus.STOP_ACTIVITY)
        await shared_state.drain()

        assert service.is_closed
        assert service.own_path not in shared_state.clients
        assert watcher.events == []
        assert (await service.get_resources()).result is ZkResult.CONNECTION_LOST
