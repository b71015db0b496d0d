# tests/unit/guards/test_unit_timeout_guard.py - v1
"""Tests for guards/timeout_guard.py - single outcome per request."""

from __future__ import annotations

import asyncio

import pytest

from nuggetwise.core.cancellation import CancelToken
from nuggetwise.core.errors import RequestTimeout
from nuggetwise.guards.timeout_guard import TimeoutGuard


class TestTimeoutGuard:
    @pytest.mark.asyncio
    async def test_finish_before_deadline(self):
        guard = TimeoutGuard(max_time_ms=1_000)
        pending = guard.start("r1")
        assert guard.active_requests == 1

        assert guard.finish("r1", "done") is True
        assert await pending.wait() == "done"
        assert pending.responded is True
        assert guard.active_requests == 0

    @pytest.mark.asyncio
    async def test_deadline_fires_first(self):
        guard = TimeoutGuard(max_time_ms=20)
        pending = guard.start("r1")

        outcome = await asyncio.wait_for(pending.wait(), timeout=1)

        assert isinstance(outcome, RequestTimeout)
        assert outcome.max_time_ms == 20
        assert guard.active_requests == 0
        # The late result is discarded
        assert guard.finish("r1", "late") is False
        assert pending.outcome.result() is outcome

    @pytest.mark.asyncio
    async def test_per_request_override(self):
        guard = TimeoutGuard(max_time_ms=60_000)
        pending = guard.start("r1", max_time_ms=10)
        outcome = await asyncio.wait_for(pending.wait(), timeout=1)
        assert isinstance(outcome, RequestTimeout)

    @pytest.mark.asyncio
    async def test_deadline_fires_cancel_token(self):
        guard = TimeoutGuard(max_time_ms=10)
        token = CancelToken()
        pending = guard.start("r1", cancel_token=token)
        await pending.wait()
        assert token.cancelled is True
        assert "10ms" in token.reason

    @pytest.mark.asyncio
    async def test_finish_releases_timer(self):
        guard = TimeoutGuard(max_time_ms=10)
        token = CancelToken()
        guard.start("r1", cancel_token=token)
        guard.finish("r1", "done")
        await asyncio.sleep(0.03)
        assert token.cancelled is False

    @pytest.mark.asyncio
    async def test_custom_timeout_response(self):
        guard = TimeoutGuard(max_time_ms=10, timeout_response=lambda p: {"timeout": p.request_id})
        pending = guard.start("r1")
        assert await pending.wait() == {"timeout": "r1"}

    @pytest.mark.asyncio
    async def test_duplicate_request_id(self):
        guard = TimeoutGuard(max_time_ms=1_000)
        guard.start("r1")
        with pytest.raises(ValueError, match="already pending"):
            guard.start("r1")
        guard.finish("r1", None)

    @pytest.mark.asyncio
    async def test_finish_unknown_request(self):
        assert TimeoutGuard(max_time_ms=1_000).finish("nope", "x") is False

    @pytest.mark.asyncio
    async def test_cancel_all_releases_timers(self):
        guard = TimeoutGuard(max_time_ms=20)
        p1 = guard.start("r1")
        guard.start("r2")
        assert sorted(guard.pending_ids()) == ["r1", "r2"]

        assert guard.cancel_all() == 2
        await asyncio.sleep(0.05)
        assert p1.responded is False
        # In-flight work can still deliver
        assert guard.finish("r1", "done") is True
        assert await p1.wait() == "done"
        assert guard.cancel_all() == 0

    def test_invalid_default(self):
        with pytest.raises(ValueError):
            TimeoutGuard(max_time_ms=0)
