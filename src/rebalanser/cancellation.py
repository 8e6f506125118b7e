"""
Cooperative cancellation signal for the follower.

The follower checks the token at the top of every cycle, around every
stop and start action, and while idle-waiting between cycles.

Example:
    >>> token = CancellationToken()
    >>> task = asyncio.create_task(follower.start_event_loop())
    >>> token.cancel()
    >>> await task
    <FollowerStatus.CANCELLED: 'cancelled'>
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    One-way cancellation flag that can be awaited.

    The token must be cancelled from the event loop thread that runs the
    follower. Use cancel_threadsafe() from any other thread.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Safe to call more than once."""
        if not self._event.is_set():
            logger.debug("Cancellation requested")
        self._event.set()

    def cancel_threadsafe(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Request cancellation from a thread other than the loop's.

        Args:
            loop: Event loop that runs the follower
        """
        loop.call_soon_threadsafe(self.cancel)

    async def wait(self, timeout: float | None = None) -> bool:
        """
        Wait until cancellation is requested or the timeout elapses.

        Args:
            timeout: Maximum seconds to wait, None for indefinite

        Returns:
            True if cancellation was requested, False on timeout
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True


__all__ = ["CancellationToken"]
