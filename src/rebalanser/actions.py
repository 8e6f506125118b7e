"""
User callbacks invoked when this client's resources change.

Stop actions run when the coordinator asks every client to stop activity;
start actions run with the client's new resources once they are granted.
Actions may be plain functions or coroutine functions. They run to
completion in registration order.

Cancellation contract:
    The follower checks for cancellation only after an action returns, so
    shutdown latency is bounded by the slowest action. Long-running actions
    that need fast shutdown should poll the follower's CancellationToken
    themselves.

Example:
    >>> actions = OnChangeActions()
    >>> actions.add_on_stop_action(lambda: consumer.pause())
    >>> async def resume(resources: list[str]) -> None:
    ...     await consumer.assign(resources)
    >>> actions.add_on_start_action(resume)
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from rebalanser.types import ResourceId

logger = logging.getLogger(__name__)

# Called with no arguments when activity must stop
OnStopAction = Callable[[], None | Awaitable[None]]

# Called with the resources granted to this client
OnStartAction = Callable[[list[ResourceId]], None | Awaitable[None]]


def get_action_name(action: Any) -> str:
    """Get a descriptive name for an action for logging."""
    name = getattr(action, "__qualname__", None) or getattr(action, "__name__", None)
    return str(name) if name else repr(action)


async def _run_action(action: Callable[..., Any], *args: Any) -> None:
    result = action(*args)
    if inspect.isawaitable(result):
        await result


@dataclass
class OnChangeActions:
    """
    Ordered stop and start callbacks supplied by the application.

    Attributes:
        on_stop_actions: Run, in order, before this client gives up resources
        on_start_actions: Run, in order, with the resources granted to this client
    """

    on_stop_actions: list[OnStopAction] = field(default_factory=list)
    on_start_actions: list[OnStartAction] = field(default_factory=list)

    def add_on_stop_action(self, action: OnStopAction) -> None:
        """Register an action to run when activity must stop."""
        self.on_stop_actions.append(action)

    def add_on_start_action(self, action: OnStartAction) -> None:
        """Register an action to run when resources are granted."""
        self.on_start_actions.append(action)

    async def invoke_on_stop_actions(self) -> None:
        """
        Run every stop action in registration order.

        An action that raises is logged and the remaining actions still run.
        """
        for action in self.on_stop_actions:
            try:
                await _run_action(action)
            except Exception as e:
                logger.warning(
                    "On stop action failed",
                    extra={"action": get_action_name(action), "error": str(e)},
                    exc_info=True,
                )

    async def invoke_on_start_actions(self, resources: list[ResourceId]) -> None:
        """
        Run every start action in registration order.

        Each action receives its own copy of the resource list. An action
        that raises is logged and the remaining actions still run.

        Args:
            resources: Resources granted to this client
        """
        for action in self.on_start_actions:
            try:
                await _run_action(action, list(resources))
            except Exception as e:
                logger.warning(
                    "On start action failed",
                    extra={
                        "action": get_action_name(action),
                        "resource_count": len(resources),
                        "error": str(e),
                    },
                    exc_info=True,
                )


__all__ = [
    "OnStopAction",
    "OnStartAction",
    "OnChangeActions",
    "get_action_name",
]
