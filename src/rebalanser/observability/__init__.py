"""
Observability utilities for rebalanser.

This module provides the tracer abstraction and standard attribute names
for consistent spans across rebalanser components.

Example:
    >>> from rebalanser.observability import create_tracer
    >>>
    >>> class MyComponent:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
"""

from rebalanser.observability.attributes import (
    ATTR_CLIENT_ID,
    ATTR_CLIENT_NUMBER,
    ATTR_FOLLOWER_STATUS,
    ATTR_LAST_START_VERSION,
    ATTR_LAST_STOP_VERSION,
    ATTR_REBALANCING_STATUS,
    ATTR_SIBLING_CHECK_RESULT,
    ATTR_SIBLING_PATH,
    ATTR_STATUS_VERSION,
)
from rebalanser.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Tracer
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
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
