"""
Shared pytest fixtures for the rebalanser library tests.

This module provides:
- Coordination fixtures (shared_state, service)
- Follower collaborators (store, token, recorder)
- A make_follower factory that registers a client and builds its Follower

All fixtures are function scoped.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from rebalanser.actions import OnChangeActions
from rebalanser.cancellation import CancellationToken
from rebalanser.config import FollowerConfig, create_test_config
from rebalanser.coordination.in_memory import (
    InMemoryCoordinationService,
    SharedCoordinationState,
)
from rebalanser.globalbarrier.follower import Follower
from rebalanser.globalbarrier.siblings import WatchTarget, resolve_next_sibling
from rebalanser.models import ClientIdentity
from rebalanser.observability import MockTracer
from rebalanser.store import ResourceGroupStore

# =============================================================================
# Action Recording
# =============================================================================


@dataclass
class ActionRecorder:
    """
    Records stop and start action invocations in call order.

    Attributes:
        calls: ("stop", None) or ("start", resources) tuples
    """

    calls: list[tuple[str, Any]] = field(default_factory=list)
    on_stop: Callable[[], None] | None = None
    on_start: Callable[[list[str]], None] | None = None

    def stop(self) -> None:
        self.calls.append(("stop", None))
        if self.on_stop:
            self.on_stop()

    def start(self, resources: list[str]) -> None:
        self.calls.append(("start", list(resources)))
        if self.on_start:
            self.on_start(resources)

    @property
    def stop_count(self) -> int:
        return sum(1 for kind, _ in self.calls if kind == "stop")

    @property
    def start_calls(self) -> list[list[str]]:
        return [resources for kind, resources in self.calls if kind == "start"]

    def actions(self) -> OnChangeActions:
        return OnChangeActions(on_stop_actions=[self.stop], on_start_actions=[self.start])


@dataclass
class FollowerHarness:
    """A follower together with its session and collaborators."""

    follower: Follower
    service: InMemoryCoordinationService
    identity: ClientIdentity
    store: ResourceGroupStore
    token: CancellationToken
    recorder: ActionRecorder
    tracer: MockTracer


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def shared_state() -> SharedCoordinationState:
    """Provide fresh server-side coordination state."""
    return SharedCoordinationState()


@pytest.fixture
def service(shared_state: SharedCoordinationState) -> InMemoryCoordinationService:
    """Provide a registered session for client-a."""
    session = InMemoryCoordinationService("client-a", shared_state)
    session.register_client()
    return session


@pytest.fixture
def store() -> ResourceGroupStore:
    return ResourceGroupStore()


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def recorder() -> ActionRecorder:
    return ActionRecorder()


@pytest.fixture
def follower_config() -> FollowerConfig:
    return create_test_config()


@pytest.fixture
def make_follower(
    shared_state: SharedCoordinationState,
    follower_config: FollowerConfig,
) -> Callable[..., FollowerHarness]:
    """
    Factory registering a new client and building its follower.

    The follower watches the closest lower-ranked client registered so far
    unless watch_sibling_path is given. Register a leader client first.
    """

    def _make(
        client_id: str,
        *,
        watch_sibling_path: str | None = None,
        config: FollowerConfig | None = None,
    ) -> FollowerHarness:
        session = InMemoryCoordinationService(client_id, shared_state)
        own_path = session.register_client()
        identity = ClientIdentity.from_path(client_id, own_path)

        if watch_sibling_path is None:
            target = resolve_next_sibling(shared_state.clients, identity.client_number)
            assert isinstance(target, WatchTarget), "register a lower-ranked client first"
            watch_sibling_path = target.path

        store = ResourceGroupStore()
        token = CancellationToken()
        recorder = ActionRecorder()
        tracer = MockTracer()
        follower = Follower(
            service=session,
            store=store,
            actions=recorder.actions(),
            identity=identity,
            watch_sibling_path=watch_sibling_path,
            cancellation=token,
            config=config or follower_config,
            tracer=tracer,
        )
        return FollowerHarness(
            follower=follower,
            service=session,
            identity=identity,
            store=store,
            token=token,
            recorder=recorder,
            tracer=tracer,
        )

    return _make
