"""
Sibling watch and leader succession detection.

Every follower watches the client node ranked immediately below its own.
When that sibling disappears the follower either finds the next-lower
ranked client to watch or, if there is none, becomes the leader.

- resolve_next_sibling: Pure choice of the sibling to watch
- SiblingReference: The sibling currently watched
- SiblingWatcher: Lists active clients, resolves and re-arms the watch

Example:
    >>> resolve_next_sibling(
    ...     ["/clients/c_0000000001", "/clients/c_0000000004", "/clients/c_0000000007"],
    ...     own_client_number=7,
    ... )
    WatchTarget(path='/clients/c_0000000004')
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from rebalanser.coordination.interface import CoordinationService, Watcher
from rebalanser.exceptions import InvalidClientPathError
from rebalanser.models import DEFAULT_CLIENT_NUMBER_WIDTH, node_id, parse_client_number
from rebalanser.observability import (
    ATTR_CLIENT_ID,
    ATTR_SIBLING_CHECK_RESULT,
    ATTR_SIBLING_PATH,
    NullTracer,
    Tracer,
)
from rebalanser.results import SiblingCheckResult, ZkResult
from rebalanser.types import ClientId, ClientNumber, NodePath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchTarget:
    """The follower must watch the sibling at path."""

    path: NodePath


@dataclass(frozen=True)
class BecomeLeader:
    """No lower-ranked client remains; the follower must become leader."""


def resolve_next_sibling(
    active_client_paths: Iterable[NodePath],
    own_client_number: ClientNumber,
    width: int = DEFAULT_CLIENT_NUMBER_WIDTH,
) -> WatchTarget | BecomeLeader:
    """
    Choose the sibling a follower must watch.

    The sibling is the active client with the largest rank strictly below
    own_client_number.

    Args:
        active_client_paths: Paths of every registered client node
        own_client_number: Rank of the follower
        width: Digits in the sequence suffix of client node names

    Returns:
        WatchTarget for the closest lower-ranked client, or BecomeLeader

    Raises:
        InvalidClientPathError: If a path does not end in a sequence number
    """
    best_number = -1
    best_path: NodePath | None = None
    for path in active_client_paths:
        number = parse_client_number(path, width)
        if best_number < number < own_client_number:
            best_number = number
            best_path = path

    if best_path is None:
        return BecomeLeader()
    return WatchTarget(best_path)


@dataclass(frozen=True)
class SiblingReference:
    """
    The sibling node a follower currently watches.

    Attributes:
        watch_path: Full path of the sibling node
        sibling_id: Last path segment, including its leading slash. Watch
            events whose path ends with it concern this sibling.
    """

    watch_path: NodePath
    sibling_id: str

    @classmethod
    def from_path(cls, path: NodePath) -> SiblingReference:
        return cls(watch_path=path, sibling_id=node_id(path))

    def matches(self, path: NodePath | None) -> bool:
        """Check whether an event path refers to this sibling."""
        return path is not None and path.endswith(self.sibling_id)


@dataclass(frozen=True)
class SiblingCheck:
    """
    Outcome of a sibling check.

    Attributes:
        result: What the follower must do next
        sibling: Sibling resolved during the check, None when none was found
    """

    result: SiblingCheckResult
    sibling: SiblingReference | None = None


class SiblingWatcher:
    """
    Re-derives the watched sibling after the current one disappears.

    Every coordination call is attempted once. Failures are reported as
    SiblingCheckResult.ERROR; retrying is left to the caller.
    """

    def __init__(
        self,
        service: CoordinationService,
        client_id: ClientId,
        client_number: ClientNumber,
        *,
        width: int = DEFAULT_CLIENT_NUMBER_WIDTH,
        tracer: Tracer | None = None,
    ) -> None:
        self._service = service
        self._client_id = client_id
        self._client_number = client_number
        self._width = width
        self._tracer = tracer or NullTracer()

    async def check_for_siblings(self, watcher: Watcher) -> SiblingCheck:
        """
        Find the sibling to watch next and arm a watch on it.

        Args:
            watcher: Receiver of the new sibling's deletion notification

        Returns:
            SiblingCheck describing the outcome
        """
        with self._tracer.span(
            "rebalanser.siblings.check_for_siblings",
            {ATTR_CLIENT_ID: self._client_id},
        ) as span:
            check = await self._check_for_siblings(watcher)
            if span:
                span.set_attribute(ATTR_SIBLING_CHECK_RESULT, check.result.value)
                if check.sibling:
                    span.set_attribute(ATTR_SIBLING_PATH, check.sibling.watch_path)
            return check

    async def _check_for_siblings(self, watcher: Watcher) -> SiblingCheck:
        clients = await self._service.get_active_clients()
        if not clients.is_ok or clients.data is None:
            logger.error(
                "Follower could not list active clients",
                extra={"client_id": self._client_id, "result": clients.result.value},
            )
            return SiblingCheck(SiblingCheckResult.ERROR)

        try:
            target = resolve_next_sibling(
                clients.data.client_paths, self._client_number, self._width
            )
        except InvalidClientPathError as e:
            logger.error(
                "Follower found a malformed client path",
                extra={"client_id": self._client_id, "error": str(e)},
            )
            return SiblingCheck(SiblingCheckResult.ERROR)

        if isinstance(target, BecomeLeader):
            logger.info(
                "Follower has no lower-ranked sibling, becoming leader",
                extra={"client_id": self._client_id, "client_number": self._client_number},
            )
            return SiblingCheck(SiblingCheckResult.IS_NEW_LEADER)

        sibling = SiblingReference.from_path(target.path)
        watch_result = await self._service.watch_sibling_node(sibling.watch_path, watcher)
        if watch_result is not ZkResult.OK:
            logger.error(
                "Follower could not watch new sibling",
                extra={
                    "client_id": self._client_id,
                    "sibling_path": sibling.watch_path,
                    "result": watch_result.value,
                },
            )
            return SiblingCheck(SiblingCheckResult.ERROR, sibling)

        logger.info(
            "Follower now watching new sibling",
            extra={"client_id": self._client_id, "sibling_path": sibling.watch_path},
        )
        return SiblingCheck(SiblingCheckResult.WATCHING_NEW_SIBLING, sibling)


__all__ = [
    "WatchTarget",
    "BecomeLeader",
    "resolve_next_sibling",
    "SiblingReference",
    "SiblingCheck",
    "SiblingWatcher",
]
