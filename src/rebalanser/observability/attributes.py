"""
Standard span attributes for rebalanser.

Example:
    >>> from rebalanser.observability.attributes import ATTR_CLIENT_ID
    >>>
    >>> with tracer.span(
    ...     "rebalanser.follower.status_change",
    ...     {ATTR_CLIENT_ID: client_id},
    ... ):
    ...     pass
"""

# =============================================================================
# Client Attributes
# =============================================================================

ATTR_CLIENT_ID = "rebalanser.client.id"
"""Opaque identity of the client (string)."""

ATTR_CLIENT_NUMBER = "rebalanser.client.number"
"""Rank of the client taken from its sequential node (integer)."""

ATTR_SIBLING_PATH = "rebalanser.sibling.path"
"""Path of the sibling node the follower watches (string)."""

# =============================================================================
# Status Attributes
# =============================================================================

ATTR_STATUS_VERSION = "rebalanser.status.version"
"""Version of the status node being processed (integer)."""

ATTR_REBALANCING_STATUS = "rebalanser.status.phase"
"""Rebalancing phase carried by the status node (string)."""

ATTR_LAST_STOP_VERSION = "rebalanser.status.last_stop_version"
"""Status version of the last StopActivity acted on (integer)."""

ATTR_LAST_START_VERSION = "rebalanser.status.last_start_version"
"""Status version of the last ResourcesGranted seen (integer)."""

# =============================================================================
# Outcome Attributes
# =============================================================================

ATTR_FOLLOWER_STATUS = "rebalanser.follower.status"
"""Outcome of a follower step (string)."""

ATTR_SIBLING_CHECK_RESULT = "rebalanser.sibling.check_result"
"""Outcome of re-deriving the watched sibling (string)."""


__all__ = [
    "ATTR_CLIENT_ID",
    "ATTR_CLIENT_NUMBER",
    "ATTR_SIBLING_PATH",
    "ATTR_STATUS_VERSION",
    "ATTR_REBALANCING_STATUS",
    "ATTR_LAST_STOP_VERSION",
    "ATTR_LAST_START_VERSION",
    "ATTR_FOLLOWER_STATUS",
    "ATTR_SIBLING_CHECK_RESULT",
]
