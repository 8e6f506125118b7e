"""Library exceptions for the rebalanser package.

Protocol outcomes (session expiry, stale nodes, cancellation) are never
raised; they travel as values in ``rebalanser.results``. The exceptions
here signal programmer errors only.
"""


class RebalanserError(Exception):
    """Base exception for rebalanser library."""

    pass


class FollowerConfigError(RebalanserError, ValueError):
    """Raised when follower configuration is invalid."""

    pass


class InvalidClientPathError(RebalanserError, ValueError):
    """Raised when a client node path does not end in a numeric rank."""

    def __init__(self, path: str, width: int) -> None:
        self.path = path
        self.width = width
        super().__init__(
            f"Client path {path!r} does not end in a {width}-digit sequence number"
        )


class FollowerStateError(RebalanserError):
    """Raised when a follower operation is invalid for its current state."""

    pass
