"""
Global barrier rebalancing, follower side.

- Follower: Event loop and watch notification sink
- StatusProtocol: Stop-then-start state machine driven by the status node
- SiblingWatcher / resolve_next_sibling: Leader succession detection
- FollowerSignals: State shared between notifications and the event loop
"""

from rebalanser.globalbarrier.follower import Follower, FollowerRole
from rebalanser.globalbarrier.siblings import (
    BecomeLeader,
    SiblingCheck,
    SiblingReference,
    SiblingWatcher,
    WatchTarget,
    resolve_next_sibling,
)
from rebalanser.globalbarrier.signals import FollowerSignals
from rebalanser.globalbarrier.status import StatusProtocol

__all__ = [
    "Follower",
    "FollowerRole",
    "StatusProtocol",
    "FollowerSignals",
    "SiblingWatcher",
    "SiblingReference",
    "SiblingCheck",
    "WatchTarget",
    "BecomeLeader",
    "resolve_next_sibling",
]
