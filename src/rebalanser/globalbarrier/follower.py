"""
Follower side of the global barrier rebalancing protocol.

A Follower watches the client ranked immediately below it and the shared
status node. Watch notifications only set flags (see FollowerSignals);
the follower's event loop polls those flags once per cycle and runs the
matching protocol step to completion before the next one.

The event loop always resolves to exactly one terminal FollowerStatus:

- SESSION_EXPIRED: The coordination session expired
- IS_NEW_LEADER: No lower-ranked client remains; the caller must lead
- CANCELLED: The CancellationToken was cancelled; the session is closed
- UNEXPECTED_FAILURE: A coordination call failed unexpectedly

Example:
    >>> follower = Follower(
    ...     service=service,
    ...     store=store,
    ...     actions=actions,
    ...     identity=ClientIdentity.from_path("client-b", own_path),
    ...     watch_sibling_path=sibling_path,
    ...     cancellation=token,
    ... )
    >>> if await follower.become_follower():
    ...     status = await follower.start_event_loop()
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from rebalanser.actions import OnChangeActions
from rebalanser.cancellation import CancellationToken
from rebalanser.config import FollowerConfig
from rebalanser.coordination.interface import CoordinationService, KeeperState, WatchedEvent
from rebalanser.exceptions import FollowerStateError
from rebalanser.globalbarrier.siblings import SiblingReference, SiblingWatcher
from rebalanser.globalbarrier.signals import FollowerSignals
from rebalanser.globalbarrier.status import StatusProtocol
from rebalanser.models import ClientIdentity
from rebalanser.observability import (
    ATTR_CLIENT_ID,
    ATTR_CLIENT_NUMBER,
    ATTR_FOLLOWER_STATUS,
    Tracer,
    create_tracer,
)
from rebalanser.results import FollowerStatus, SiblingCheckResult, ZkResult
from rebalanser.store import ResourceGroupStore
from rebalanser.types import ClientId, NodePath, Version

logger = logging.getLogger(__name__)


@runtime_checkable
class FollowerRole(Protocol):
    """Protocol for the follower role as seen by the client's role manager."""

    async def become_follower(self) -> bool:
        """Arm the initial watches. Returns False if the role cannot start."""
        ...

    async def start_event_loop(self) -> FollowerStatus:
        """Run until a terminal FollowerStatus is reached."""
        ...


class Follower:
    """
    Follower coordination state machine.

    Also the Watcher for every watch the follower arms, so the
    coordination client calls process() for each fired watch.
    """

    def __init__(
        self,
        service: CoordinationService,
        store: ResourceGroupStore,
        actions: OnChangeActions,
        identity: ClientIdentity,
        watch_sibling_path: NodePath,
        cancellation: CancellationToken,
        *,
        config: FollowerConfig | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        """
        Initialize the follower.

        Args:
            service: Coordination-service session of this client
            store: Local resource store the follower keeps up to date
            actions: Application callbacks for stop and start
            identity: This client's id, rank and node path
            watch_sibling_path: Path of the lower-ranked client to watch first
            cancellation: Cooperative shutdown signal
            config: Follower settings, defaults to FollowerConfig()
            tracer: Optional custom Tracer. If not provided, one is created
                based on config.enable_tracing.
        """
        self._config = config or FollowerConfig()
        self._tracer = tracer or create_tracer(__name__, self._config.enable_tracing)

        self._service = service
        self._actions = actions
        self._identity = identity
        self._cancellation = cancellation

        self._signals = FollowerSignals(SiblingReference.from_path(watch_sibling_path))
        self._siblings = SiblingWatcher(
            service,
            identity.client_id,
            identity.client_number,
            width=self._config.client_number_width,
            tracer=self._tracer,
        )
        self._status = StatusProtocol(
            service,
            store,
            actions,
            identity.client_id,
            cancellation,
            tracer=self._tracer,
        )

        self._armed = False
        self._running = False
        self._last_stop_version: Version = 0
        self._last_start_version: Version = 0

    @property
    def client_id(self) -> ClientId:
        return self._identity.client_id

    @property
    def watch_sibling_path(self) -> NodePath:
        return self._signals.sibling.watch_path

    @property
    def exit_reason(self) -> FollowerStatus:
        """Exit reason latched by watch notifications, OK if none."""
        return self._signals.exit_reason

    @property
    def last_stop_version(self) -> Version:
        return self._last_stop_version

    @property
    def last_start_version(self) -> Version:
        return self._last_start_version

    async def become_follower(self) -> bool:
        """
        Arm the initial sibling and status watches.

        Returns:
            True if both watches are armed. False means the follower must
            not start its event loop.
        """
        sibling = self._signals.sibling
        watch_sibling = await self._service.watch_sibling_node(sibling.watch_path, self)
        if watch_sibling is not ZkResult.OK:
            if watch_sibling is ZkResult.NO_NODE:
                logger.info(
                    "Follower could not watch sibling node as it no longer exists",
                    extra={"client_id": self.client_id, "sibling_path": sibling.watch_path},
                )
            else:
                logger.error(
                    "Follower could not watch sibling node",
                    extra={
                        "client_id": self.client_id,
                        "sibling_path": sibling.watch_path,
                        "result": watch_sibling.value,
                    },
                )
            return False

        watch_status = await self._service.watch_status(self)
        if not watch_status.is_ok:
            logger.error(
                "Follower could not watch status node",
                extra={"client_id": self.client_id, "result": watch_status.result.value},
            )
            return False

        self._armed = True
        logger.info(
            "Became follower",
            extra={
                "client_id": self.client_id,
                "client_number": self._identity.client_number,
                "sibling_path": sibling.watch_path,
            },
        )
        return True

    async def process(self, event: WatchedEvent) -> None:
        """
        Handle a fired watch.

        In priority order: session expiry latches SESSION_EXPIRED; the
        watched sibling's event re-derives the sibling to watch; a status
        node event flags a status change for the event loop. Anything else
        is ignored.

        Args:
            event: The fired watch
        """
        if event.state is KeeperState.EXPIRED:
            self._signals.latch_exit(FollowerStatus.SESSION_EXPIRED)
            logger.warning("Follower session expired", extra={"client_id": self.client_id})
        # the watched sibling is gone: watch the next lower-ranked client or lead
        elif self._signals.sibling.matches(event.path):
            await self._on_sibling_changed()
        elif event.path is not None and event.path.endswith(self._config.status_node_name):
            self._signals.signal_status_change()
        else:
            logger.debug(
                "Follower ignoring watch event",
                extra={
                    "client_id": self.client_id,
                    "path": event.path,
                    "state": event.state.value,
                    "type": event.type.value,
                },
            )

    async def _on_sibling_changed(self) -> None:
        try:
            check = await self._siblings.check_for_siblings(self)
        except Exception:
            # no sibling watch is armed any more, so the loop must exit
            logger.exception(
                "Follower sibling check failed unexpectedly",
                extra={"client_id": self.client_id},
            )
            self._signals.latch_exit(FollowerStatus.UNEXPECTED_FAILURE)
            return

        if check.sibling is not None:
            self._signals.watch_sibling(check.sibling)

        if check.result is SiblingCheckResult.IS_NEW_LEADER:
            self._signals.latch_exit(FollowerStatus.IS_NEW_LEADER)
        elif check.result is SiblingCheckResult.ERROR:
            self._signals.latch_exit(FollowerStatus.UNEXPECTED_FAILURE)

    async def start_event_loop(self) -> FollowerStatus:
        """
        Run the follower until a terminal status is reached.

        Returns:
            The terminal FollowerStatus, never OK

        Raises:
            FollowerStateError: If become_follower() has not succeeded, or
                the event loop is already running
        """
        if not self._armed:
            raise FollowerStateError(
                "become_follower() must succeed before the event loop starts"
            )
        if self._running:
            raise FollowerStateError("Follower event loop is already running")

        self._running = True
        with self._tracer.span(
            "rebalanser.follower.event_loop",
            {
                ATTR_CLIENT_ID: self.client_id,
                ATTR_CLIENT_NUMBER: self._identity.client_number,
            },
        ) as span:
            try:
                status = await self._run_event_loop()
            except Exception:
                logger.exception(
                    "Follower event loop failed unexpectedly",
                    extra={"client_id": self.client_id},
                )
                status = FollowerStatus.UNEXPECTED_FAILURE
            finally:
                self._running = False

            if span:
                span.set_attribute(ATTR_FOLLOWER_STATUS, status.value)

        logger.info(
            "Follower event loop exited",
            extra={"client_id": self.client_id, "status": status.value},
        )
        return status

    async def _run_event_loop(self) -> FollowerStatus:
        while not self._cancellation.is_cancellation_requested:
            exit_reason = self._signals.exit_reason
            if exit_reason.is_terminal:
                # release resources before giving up ownership
                await self._actions.invoke_on_stop_actions()
                return exit_reason

            if self._signals.consume_status_change():
                result = await self._status.process_status_change(
                    self, self._last_stop_version, self._last_start_version
                )
                if result.exit_reason is FollowerStatus.CANCELLED:
                    break
                if result.exit_reason.is_terminal:
                    return result.exit_reason
                self._last_stop_version = result.last_stop_version
                self._last_start_version = result.last_start_version
                continue

            await self._cancellation.wait(self._config.poll_interval)

        if self._cancellation.is_cancellation_requested:
            await self._service.close_session()
            return FollowerStatus.CANCELLED

        return FollowerStatus.UNEXPECTED_FAILURE


__all__ = ["Follower", "FollowerRole"]
