"""
Result types reported by the follower protocol.

Every component reports its outcome through these small closed types
instead of raising:

- ZkResult: Outcome of a single coordination-service call
- ZkResponse: ZkResult plus the payload of a successful read
- FollowerStatus: Terminal outcome of the follower event loop
- SiblingCheckResult: Outcome of re-deriving the watched sibling
- StatusChangeResult: Outcome of one status transition, with the
  stop/start versions the event loop carries between cycles

Example:
    >>> response = ZkResponse.ok(snapshot)
    >>> response.is_ok
    True
    >>> follower_status_for(ZkResult.SESSION_EXPIRED)
    <FollowerStatus.SESSION_EXPIRED: 'session_expired'>
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from rebalanser.types import Version

T = TypeVar("T")


class ZkResult(Enum):
    """
    Outcome of a coordination-service call.

    OK, NO_NODE, NODE_ALREADY_EXISTS and SESSION_EXPIRED each drive a
    distinct branch of the protocol. The remaining members are all treated
    as "other failure".
    """

    OK = "ok"
    NO_NODE = "no_node"
    NODE_ALREADY_EXISTS = "node_already_exists"
    SESSION_EXPIRED = "session_expired"
    BAD_VERSION = "bad_version"
    CONNECTION_LOST = "connection_lost"
    TIMEOUT = "timeout"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class ZkResponse(Generic[T]):
    """
    Envelope for a coordination-service read.

    Attributes:
        result: Outcome of the call
        data: Payload, only present when result is OK
    """

    result: ZkResult
    data: T | None = None

    @classmethod
    def ok(cls, data: T) -> ZkResponse[T]:
        """Create a successful response carrying data."""
        return cls(result=ZkResult.OK, data=data)

    @classmethod
    def failed(cls, result: ZkResult) -> ZkResponse[T]:
        """Create a failed response with no payload."""
        if result is ZkResult.OK:
            raise ValueError("failed() requires a non-OK result")
        return cls(result=result)

    @property
    def is_ok(self) -> bool:
        return self.result is ZkResult.OK


class FollowerStatus(Enum):
    """
    Outcome of the follower event loop.

    OK means "keep running" and is never returned by the loop. All other
    members are terminal: once latched they are never overwritten.
    """

    OK = "ok"
    SESSION_EXPIRED = "session_expired"
    IS_NEW_LEADER = "is_new_leader"
    CANCELLED = "cancelled"
    UNEXPECTED_FAILURE = "unexpected_failure"

    @property
    def is_terminal(self) -> bool:
        return self is not FollowerStatus.OK


class SiblingCheckResult(Enum):
    """Outcome of re-deriving which sibling to watch."""

    WATCHING_NEW_SIBLING = "watching_new_sibling"
    IS_NEW_LEADER = "is_new_leader"
    ERROR = "error"


@dataclass
class StatusChangeResult:
    """
    Result of processing one status node change.

    The event loop only adopts the versions when exit_reason is OK.

    Attributes:
        exit_reason: OK to keep running, otherwise the terminal status
        last_stop_version: Status version of the last StopActivity acted on
        last_start_version: Status version of the last ResourcesGranted seen
    """

    exit_reason: FollowerStatus = FollowerStatus.OK
    last_stop_version: Version = 0
    last_start_version: Version = 0


def follower_status_for(result: ZkResult) -> FollowerStatus:
    """
    Map a failed coordination call to the terminal follower status.

    Session expiry is its own terminal status; any other failure is
    unexpected.

    Args:
        result: A non-OK ZkResult

    Returns:
        SESSION_EXPIRED or UNEXPECTED_FAILURE
    """
    if result is ZkResult.SESSION_EXPIRED:
        return FollowerStatus.SESSION_EXPIRED
    return FollowerStatus.UNEXPECTED_FAILURE


__all__ = [
    "ZkResult",
    "ZkResponse",
    "FollowerStatus",
    "SiblingCheckResult",
    "StatusChangeResult",
    "follower_status_for",
]
