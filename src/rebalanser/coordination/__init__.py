"""
Coordination-service boundary and the in-memory implementation.

Example:
    >>> from rebalanser.coordination import (
    ...     InMemoryCoordinationService,
    ...     SharedCoordinationState,
    ... )
    >>> state = SharedCoordinationState()
    >>> service = InMemoryCoordinationService("client-a", state)
"""

from rebalanser.coordination.in_memory import (
    DEFAULT_ROOT,
    CoordinationOperations,
    InMemoryCoordinationService,
    SharedCoordinationState,
)
from rebalanser.coordination.interface import (
    CoordinationService,
    EventType,
    KeeperState,
    WatchedEvent,
    Watcher,
)

__all__ = [
    # Interface
    "CoordinationService",
    "Watcher",
    "WatchedEvent",
    "KeeperState",
    "EventType",
    # In-memory
    "DEFAULT_ROOT",
    "SharedCoordinationState",
    "InMemoryCoordinationService",
    "CoordinationOperations",
]
