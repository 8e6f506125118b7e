"""
State shared between a follower's notification sink and its event loop.

Watch notifications arrive on the coordination client's own thread or
task while the event loop runs; every field here is read and written
under one lock.
"""

import threading

from rebalanser.globalbarrier.siblings import SiblingReference
from rebalanser.results import FollowerStatus


class FollowerSignals:
    """
    Exit-reason latch, status-change flag and watched sibling.

    The exit reason is a latch: the first non-OK value wins and is never
    overwritten. The status-change flag is set by the notification sink
    and consumed (read and cleared) only by the event loop.
    """

    def __init__(self, sibling: SiblingReference) -> None:
        self._lock = threading.Lock()
        self._exit_reason = FollowerStatus.OK
        self._status_change = False
        self._sibling = sibling

    @property
    def exit_reason(self) -> FollowerStatus:
        with self._lock:
            return self._exit_reason

    def latch_exit(self, reason: FollowerStatus) -> bool:
        """
        Latch a terminal exit reason.

        Args:
            reason: Terminal FollowerStatus

        Returns:
            True if latched, False if an exit reason was already latched
        """
        if not reason.is_terminal:
            raise ValueError("Only a terminal FollowerStatus can be latched")
        with self._lock:
            if self._exit_reason.is_terminal:
                return False
            self._exit_reason = reason
            return True

    def signal_status_change(self) -> None:
        with self._lock:
            self._status_change = True

    def consume_status_change(self) -> bool:
        """Read and clear the status-change flag in one step."""
        with self._lock:
            pending = self._status_change
            self._status_change = False
            return pending

    @property
    def sibling(self) -> SiblingReference:
        with self._lock:
            return self._sibling

    def watch_sibling(self, sibling: SiblingReference) -> None:
        with self._lock:
            self._sibling = sibling


__all__ = ["FollowerSignals"]
