"""
Unit tests for CancellationToken.
"""

import asyncio
import threading
import time

import pytest

from rebalanser.cancellation import CancellationToken


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_not_cancelled_initially(self, token: CancellationToken):
        assert not token.is_cancellation_requested

    def test_cancel_is_idempotent(self, token: CancellationToken):
        token.cancel()
        token.cancel()
        assert token.is_cancellation_requested

    @pytest.mark.asyncio
    async def test_wait_times_out(self, token: CancellationToken):
        assert await token.wait(0.01) is False

    @pytest.mark.asyncio
    async def test_wait_returns_immediately_when_cancelled(self, token: CancellationToken):
        token.cancel()
        start = time.monotonic()
        assert await token.wait(5.0) is True
        assert time.monotonic() - start < 1.0

    @pytest.mark.asyncio
    async def test_wait_wakes_on_cancel(self, token: CancellationToken):
        waiter = asyncio.create_task(token.wait(5.0))
        await asyncio.sleep(0)
        token.cancel()
        assert await asyncio.wait_for(waiter, timeout=1.0) is True

    @pytest.mark.asyncio
    async def test_cancel_threadsafe(self, token: CancellationToken):
        loop = asyncio.get_running_loop()
        thread = threading.Thread(target=token.cancel_threadsafe, args=(loop,))
        thread.start()
        assert await token.wait(2.0) is True
        thread.join()
