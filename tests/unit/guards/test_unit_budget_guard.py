# tests/unit/guards/test_unit_budget_guard.py - v1
"""Tests for guards/budget_guard.py - per-caller spend window."""

from __future__ import annotations

from decimal import Decimal

import pytest

from nuggetwise.config.settings import Settings
from nuggetwise.core.errors import BudgetExceeded
from nuggetwise.guards.budget_guard import BudgetGuard


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def guard(clock) -> BudgetGuard:
    return BudgetGuard(Decimal("10.00"), window_seconds=86_400, clock=clock)


class TestAdmit:
    def test_new_caller_admitted(self, guard):
        decision = guard.admit("alice")
        assert decision.allowed is True
        assert decision.remaining == Decimal("10.00")
        assert decision.spent == Decimal("0")

    def test_admitted_just_under_cap(self, guard):
        guard.commit("alice", Decimal("9.95"))
        decision = guard.admit("alice")
        assert decision.allowed is True
        assert decision.remaining == Decimal("0.05")

    def test_rejected_at_cap(self, guard):
        guard.commit("alice", Decimal("10.00"))
        decision = guard.admit("alice")
        assert decision.allowed is False
        assert decision.remaining == Decimal("0")

    def test_estimate_does_not_reserve(self, guard):
        guard.commit("alice", Decimal("9.95"))
        assert guard.admit("alice", estimated_cost=Decimal("5")).allowed is True
        assert guard.spent("alice") == Decimal("9.95")

    def test_callers_are_independent(self, guard):
        guard.commit("alice", Decimal("12"))
        assert guard.admit("bob").allowed is True

    def test_require_raises_typed_error(self, guard):
        guard.commit("alice", Decimal("10.04"))
        with pytest.raises(BudgetExceeded) as info:
            guard.require("alice")
        assert info.value.remaining == Decimal("0")
        assert info.value.spent == Decimal("10.04")


class TestCommit:
    def test_accumulates(self, guard):
        guard.commit("alice", Decimal("0.05"))
        assert guard.commit("alice", Decimal("0.04")) == Decimal("0.09")

    def test_may_exceed_cap(self, guard):
        guard.commit("alice", Decimal("9.95"))
        guard.commit("alice", Decimal("0.09"))
        assert guard.spent("alice") == Decimal("10.04")
        assert guard.remaining("alice") == Decimal("0")

    def test_zero_commit_creates_window(self, guard):
        guard.commit("alice", Decimal("0"))
        assert guard.spent("alice") == Decimal("0")

    def test_negative_rejected(self, guard):
        with pytest.raises(ValueError, match="non-negative"):
            guard.commit("alice", Decimal("-0.01"))


class TestWindow:
    def test_resets_after_window(self, guard, clock):
        guard.commit("alice", Decimal("10.50"))
        clock.now += 86_400 + 1
        decision = guard.admit("alice")
        assert decision.allowed is True
        assert decision.spent == Decimal("0")

    def test_not_reset_exactly_at_boundary(self, guard, clock):
        guard.commit("alice", Decimal("10.50"))
        clock.now += 86_400
        assert guard.admit("alice").allowed is False

    def test_reset_helper(self, guard):
        guard.commit("alice", Decimal("11"))
        guard.commit("bob", Decimal("11"))
        guard.reset("alice")
        assert guard.spent("alice") == Decimal("0")
        guard.reset()
        assert guard.spent("bob") == Decimal("0")


class TestStatus:
    def test_percentage(self, guard):
        guard.commit("alice", Decimal("2.50"))
        status = guard.status("alice")
        assert status.spent == Decimal("2.50")
        assert status.remaining == Decimal("7.50")
        assert status.percentage == pytest.approx(25.0)


class TestConstruction:
    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            BudgetGuard(Decimal("0"))

    def test_from_settings(self):
        settings = Settings(_env_file=None, budget_max_cost=Decimal("3"), budget_window_hours=1)
        guard = BudgetGuard.from_settings(settings)
        assert guard.max_cost == Decimal("3")
