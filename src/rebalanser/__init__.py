"""
rebalanser - Barrier-synchronized resource rebalancing over a coordination service.

This library provides:
- Follower state machine for the global barrier protocol
- Leader succession detection by watching the next lower-ranked client
- Stop-before-start resource handover with user callbacks
- Thread-safe local store of the resources assigned to this client
- In-memory coordination service for tests and local simulation
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rebalanser-py")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from rebalanser.actions import OnChangeActions, OnStartAction, OnStopAction
from rebalanser.cancellation import CancellationToken
from rebalanser.config import FollowerConfig, create_test_config
from rebalanser.coordination import (
    CoordinationService,
    EventType,
    InMemoryCoordinationService,
    KeeperState,
    SharedCoordinationState,
    WatchedEvent,
    Watcher,
)
from rebalanser.exceptions import (
    FollowerConfigError,
    FollowerStateError,
    InvalidClientPathError,
    RebalanserError,
)
from rebalanser.globalbarrier import (
    BecomeLeader,
    Follower,
    FollowerRole,
    StatusProtocol,
    WatchTarget,
    resolve_next_sibling,
)
from rebalanser.models import (
    ActiveClients,
    ClientIdentity,
    RebalancingStatus,
    ResourceAssignment,
    ResourceAssignments,
    StatusSnapshot,
)
from rebalanser.results import (
    FollowerStatus,
    SiblingCheckResult,
    StatusChangeResult,
    ZkResponse,
    ZkResult,
)
from rebalanser.store import (
    AssignmentStatus,
    GetResourcesResponse,
    ResourceGroupStore,
    SetResourcesRequest,
)

__all__ = [
    "__version__",
    # Exceptions
    "RebalanserError",
    "FollowerConfigError",
    "FollowerStateError",
    "InvalidClientPathError",
    # Results
    "ZkResult",
    "ZkResponse",
    "FollowerStatus",
    "SiblingCheckResult",
    "StatusChangeResult",
    # Models
    "RebalancingStatus",
    "StatusSnapshot",
    "ResourceAssignment",
    "ResourceAssignments",
    "ActiveClients",
    "ClientIdentity",
    # Store
    "AssignmentStatus",
    "SetResourcesRequest",
    "GetResourcesResponse",
    "ResourceGroupStore",
    # Actions and cancellation
    "OnChangeActions",
    "OnStopAction",
    "OnStartAction",
    "CancellationToken",
    # Config
    "FollowerConfig",
    "create_test_config",
    # Coordination
    "CoordinationService",
    "Watcher",
    "WatchedEvent",
    "KeeperState",
    "EventType",
    "SharedCoordinationState",
    "InMemoryCoordinationService",
    # Follower
    "Follower",
    "FollowerRole",
    "StatusProtocol",
    "resolve_next_sibling",
    "WatchTarget",
    "BecomeLeader",
]
