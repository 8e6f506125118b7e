"""
Status protocol state machine.

The coordinator drives every rebalancing through the status node:

1. StopActivity: every follower runs its stop actions and reports stopped
2. ResourcesGranted: every follower reads its new resources, runs its
   start actions and reports started
3. StartConfirmed: the coordinator saw every follower start; followers
   do nothing

A follower only acts on ResourcesGranted after it has acted on a
StopActivity, so a resource is never owned by two clients at once. A
follower that joins after the stop phase ignores the grant and waits for
the next rebalancing.

Example:
    >>> protocol = StatusProtocol(service, store, actions, "client-a", token)
    >>> result = await protocol.process_status_change(watcher, 0, 0)
    >>> result.exit_reason
    <FollowerStatus.OK: 'ok'>
"""

from __future__ import annotations

import logging

from rebalanser.actions import OnChangeActions
from rebalanser.cancellation import CancellationToken
from rebalanser.coordination.interface import CoordinationService, Watcher
from rebalanser.models import RebalancingStatus, StatusSnapshot
from rebalanser.observability import (
    ATTR_CLIENT_ID,
    ATTR_FOLLOWER_STATUS,
    ATTR_LAST_START_VERSION,
    ATTR_LAST_STOP_VERSION,
    ATTR_REBALANCING_STATUS,
    ATTR_STATUS_VERSION,
    NullTracer,
    Tracer,
)
from rebalanser.results import (
    FollowerStatus,
    StatusChangeResult,
    ZkResponse,
    ZkResult,
    follower_status_for,
)
from rebalanser.store import AssignmentStatus, ResourceGroupStore
from rebalanser.types import ClientId, Version

logger = logging.getLogger(__name__)


class StatusProtocol:
    """
    Interprets status node snapshots and drives the stop-then-start sequence.

    Every coordination call is attempted once per step. Outcomes are
    returned as StatusChangeResult values; nothing here raises for
    coordination failures.
    """

    def __init__(
        self,
        service: CoordinationService,
        store: ResourceGroupStore,
        actions: OnChangeActions,
        client_id: ClientId,
        cancellation: CancellationToken,
        *,
        tracer: Tracer | None = None,
    ) -> None:
        self._service = service
        self._store = store
        self._actions = actions
        self._client_id = client_id
        self._cancellation = cancellation
        self._tracer = tracer or NullTracer()

    async def rearm_status_watch(self, watcher: Watcher) -> ZkResponse[StatusSnapshot]:
        """
        Arm the next one-shot status watch and read the current status.

        Args:
            watcher: Receiver of the next status change

        Returns:
            Response carrying the current StatusSnapshot
        """
        response = await self._service.watch_status(watcher)
        if not response.is_ok:
            logger.error(
                "Follower could not re-arm status watch",
                extra={"client_id": self._client_id, "result": response.result.value},
            )
        return response

    async def process_status_change(
        self,
        watcher: Watcher,
        last_stop_version: Version,
        last_start_version: Version,
    ) -> StatusChangeResult:
        """
        Handle a fired status watch.

        Re-arms the status watch first. If that fails the snapshot is not
        acted upon and the failure is terminal.

        Args:
            watcher: Receiver of the next status change
            last_stop_version: Status version of the last StopActivity acted on
            last_start_version: Status version of the last ResourcesGranted seen

        Returns:
            StatusChangeResult for the event loop
        """
        response = await self.rearm_status_watch(watcher)
        if not response.is_ok or response.data is None:
            return StatusChangeResult(
                exit_reason=follower_status_for(response.result),
                last_stop_version=last_stop_version,
                last_start_version=last_start_version,
            )
        return await self.apply_status_transition(
            response.data, last_stop_version, last_start_version
        )

    async def apply_status_transition(
        self,
        snapshot: StatusSnapshot,
        last_stop_version: Version,
        last_start_version: Version,
    ) -> StatusChangeResult:
        """
        Act on a freshly read status snapshot.

        Args:
            snapshot: Status read while re-arming the watch
            last_stop_version: Status version of the last StopActivity acted on
            last_start_version: Status version of the last ResourcesGranted seen

        Returns:
            StatusChangeResult carrying the next versions and exit reason
        """
        with self._tracer.span(
            "rebalanser.status.apply_transition",
            {
                ATTR_CLIENT_ID: self._client_id,
                ATTR_STATUS_VERSION: snapshot.version,
                ATTR_REBALANCING_STATUS: snapshot.rebalancing_status.value,
            },
        ) as span:
            result = await self._apply(snapshot, last_stop_version, last_start_version)
            if span:
                span.set_attribute(ATTR_FOLLOWER_STATUS, result.exit_reason.value)
                span.set_attribute(ATTR_LAST_STOP_VERSION, result.last_stop_version)
                span.set_attribute(ATTR_LAST_START_VERSION, result.last_start_version)
            return result

    async def _apply(
        self,
        snapshot: StatusSnapshot,
        last_stop_version: Version,
        last_start_version: Version,
    ) -> StatusChangeResult:
        result = StatusChangeResult(
            last_stop_version=last_stop_version,
            last_start_version=last_start_version,
        )

        if self._cancellation.is_cancellation_requested:
            result.exit_reason = FollowerStatus.CANCELLED
            return result

        status = snapshot.rebalancing_status
        if status is RebalancingStatus.STOP_ACTIVITY:
            return await self._on_stop_activity(
                snapshot, result, last_stop_version, last_start_version
            )
        if status is RebalancingStatus.RESOURCES_GRANTED:
            return await self._on_resources_granted(snapshot, result, last_stop_version)
        if status is RebalancingStatus.START_CONFIRMED:
            return result

        logger.warning(
            "Follower received unrecognized rebalancing status, ignoring",
            extra={"client_id": self._client_id, "status_version": snapshot.version},
        )
        return result

    async def _on_stop_activity(
        self,
        snapshot: StatusSnapshot,
        result: StatusChangeResult,
        last_stop_version: Version,
        last_start_version: Version,
    ) -> StatusChangeResult:
        result.last_stop_version = snapshot.version
        result.last_start_version = last_start_version

        await self._actions.invoke_on_stop_actions()

        # stop actions can run for an arbitrary time
        if self._cancellation.is_cancellation_requested:
            result.exit_reason = FollowerStatus.CANCELLED
            return result

        stopped = await self._service.set_follower_as_stopped(self._client_id)
        if stopped is ZkResult.OK:
            logger.info(
                "Follower stopped activity",
                extra={"client_id": self._client_id, "status_version": snapshot.version},
            )
        elif stopped is ZkResult.NODE_ALREADY_EXISTS and last_stop_version > last_start_version:
            logger.info(
                "Follower received two consecutive stop commands",
                extra={
                    "client_id": self._client_id,
                    "last_stop_version": last_stop_version,
                    "last_start_version": last_start_version,
                },
            )
        else:
            result.exit_reason = follower_status_for(stopped)
            logger.error(
                "Follower could not report stopped",
                extra={"client_id": self._client_id, "result": stopped.value},
            )
        return result

    async def _on_resources_granted(
        self,
        snapshot: StatusSnapshot,
        result: StatusChangeResult,
        last_stop_version: Version,
    ) -> StatusChangeResult:
        result.last_start_version = snapshot.version
        result.last_stop_version = last_stop_version

        if last_stop_version == 0:
            logger.info(
                "Follower ignoring ResourcesGranted as no StopActivity was received, "
                "likely a new follower",
                extra={"client_id": self._client_id, "status_version": snapshot.version},
            )
            return result

        response = await self._service.get_resources()
        if not response.is_ok or response.data is None:
            result.exit_reason = follower_status_for(response.result)
            logger.error(
                "Follower could not read resource assignments",
                extra={"client_id": self._client_id, "result": response.result.value},
            )
            return result

        assigned = response.data.resources_for(self._client_id)
        self._store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, assigned)

        await self._actions.invoke_on_start_actions(assigned)

        # start actions can run for an arbitrary time
        if self._cancellation.is_cancellation_requested:
            result.exit_reason = FollowerStatus.CANCELLED
            return result

        started = await self._service.set_follower_as_started(self._client_id)
        if started is ZkResult.NO_NODE:
            logger.info(
                "Follower started report no longer expected by coordinator",
                extra={"client_id": self._client_id, "status_version": snapshot.version},
            )
        elif started is not ZkResult.OK:
            result.exit_reason = follower_status_for(started)
            logger.error(
                "Follower could not report started",
                extra={"client_id": self._client_id, "result": started.value},
            )
        else:
            logger.info(
                "Follower started with granted resources",
                extra={
                    "client_id": self._client_id,
                    "status_version": snapshot.version,
                    "resource_count": len(assigned),
                },
            )
        return result


__all__ = ["StatusProtocol"]
