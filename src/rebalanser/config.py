"""
Configuration for the follower.

This module provides:
- FollowerConfig: Settings for the follower event loop
- create_test_config: Configuration with a short idle wait for tests
"""

from dataclasses import dataclass

from rebalanser.exceptions import FollowerConfigError
from rebalanser.models import DEFAULT_CLIENT_NUMBER_WIDTH


@dataclass(frozen=True)
class FollowerConfig:
    """
    Configuration for a follower.

    Attributes:
        poll_interval: Seconds to idle between event loop cycles. Bounds how
            long the follower takes to notice a status change or an exit
            signal.
        client_number_width: Digits in the sequence suffix of client nodes
        status_node_name: Name of the status node; watch events whose path
            ends with it are status changes
        enable_tracing: Whether to emit OpenTelemetry spans

    Example:
        >>> config = FollowerConfig(poll_interval=0.5)
    """

    poll_interval: float = 1.0
    client_number_width: int = DEFAULT_CLIENT_NUMBER_WIDTH
    status_node_name: str = "status"
    enable_tracing: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.poll_interval <= 0:
            raise FollowerConfigError(
                f"poll_interval must be positive, got {self.poll_interval}. "
                "Use a value like 1.0 (default) seconds."
            )

        if self.client_number_width < 1:
            raise FollowerConfigError(
                f"client_number_width must be positive, got {self.client_number_width}."
            )

        if not self.status_node_name or "/" in self.status_node_name:
            raise FollowerConfigError(
                f"status_node_name must be a non-empty node name, got {self.status_node_name!r}."
            )


def create_test_config(poll_interval: float = 0.01) -> FollowerConfig:
    """
    Create a configuration suited to tests.

    Uses a short idle wait and disables tracing.

    Args:
        poll_interval: Seconds to idle between cycles

    Returns:
        FollowerConfig for tests
    """
    return FollowerConfig(poll_interval=poll_interval, enable_tracing=False)


__all__ = ["FollowerConfig", "create_test_config"]
