# src/guards/budget_guard.py - v1
"""Per-caller spend cap over a rolling window.

Admission is check-then-commit: ``admit`` compares what the caller has
spent in the current window with the cap, and ``commit`` adds the actual
cost once the request has finished. Two concurrent requests from the same
caller may both be admitted while under the cap, and their combined commits
may exceed it; the next request is then rejected. Spend only ever grows
inside a window and is reset lazily when the window has elapsed.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Callable

from nuggetwise.core.errors import BudgetExceeded

if TYPE_CHECKING:
    from nuggetwise.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 24 * 60 * 60


@dataclass
class SpendWindow:
    """Spend accumulated by one caller since ``window_start`` (epoch seconds)."""

    spent: Decimal
    window_start: float


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    remaining: Decimal
    spent: Decimal
    limit: Decimal


@dataclass(frozen=True)
class BudgetStatus:
    spent: Decimal
    limit: Decimal
    remaining: Decimal
    percentage: float


class BudgetGuard:
    """Spend guard keyed by caller identity.

    Args:
        max_cost: Cap per caller per window.
        window_seconds: Window length; spend resets once it has elapsed.
        clock: Time source returning epoch seconds.
    """

    def __init__(
        self,
        max_cost: Decimal,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_cost <= 0:
            raise ValueError(f"max_cost must be positive, got {max_cost}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self._max_cost = Decimal(max_cost)
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, SpendWindow] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> BudgetGuard:
        return cls(settings.budget_max_cost, settings.budget_window_seconds)

    @property
    def max_cost(self) -> Decimal:
        return self._max_cost

    def admit(self, caller_id: str, estimated_cost: Decimal | None = None) -> AdmissionDecision:
        """Decide whether ``caller_id`` may start a new request.

        The caller is admitted iff its window spend is strictly below the
        cap. ``estimated_cost`` is accepted for interface symmetry and does
        not influence the decision.
        """
        with self._lock:
            window = self._window(caller_id)
            spent = window.spent

        if spent >= self._max_cost:
            logger.warning(
                "Budget exceeded for caller %s: spent %s of %s", caller_id, spent, self._max_cost
            )
            return AdmissionDecision(False, Decimal("0"), spent, self._max_cost)

        return AdmissionDecision(True, self._max_cost - spent, spent, self._max_cost)

    def require(self, caller_id: str, estimated_cost: Decimal | None = None) -> AdmissionDecision:
        """Like ``admit`` but raises BudgetExceeded on rejection."""
        decision = self.admit(caller_id, estimated_cost)
        if not decision.allowed:
            raise BudgetExceeded(caller_id, decision.spent, decision.limit)
        return decision

    def commit(self, caller_id: str, cost: Decimal) -> Decimal:
        """Add ``cost`` to the caller's window spend. Returns the new total."""
        cost = Decimal(cost)
        if cost < 0:
            raise ValueError(f"cost must be non-negative, got {cost}")
        with self._lock:
            window = self._window(caller_id)
            window.spent += cost
            total = window.spent
        logger.debug("Committed %s for caller %s (window total %s)", cost, caller_id, total)
        return total

    def spent(self, caller_id: str) -> Decimal:
        with self._lock:
            return self._window(caller_id).spent

    def remaining(self, caller_id: str) -> Decimal:
        return max(Decimal("0"), self._max_cost - self.spent(caller_id))

    def status(self, caller_id: str) -> BudgetStatus:
        """Current spend, cap and usage percentage for a caller."""
        spent = self.spent(caller_id)
        return BudgetStatus(
            spent=spent,
            limit=self._max_cost,
            remaining=max(Decimal("0"), self._max_cost - spent),
            percentage=float(spent / self._max_cost * 100),
        )

    def reset(self, caller_id: str | None = None) -> None:
        """Drop one caller's window, or every window."""
        with self._lock:
            if caller_id is None:
                self._windows.clear()
            else:
                self._windows.pop(caller_id, None)

    def _window(self, caller_id: str) -> SpendWindow:
        """Return the caller's current window, creating or resetting it. Caller holds the lock."""
        now = self._clock()
        window = self._windows.get(caller_id)
        if window is None:
            window = SpendWindow(spent=Decimal("0"), window_start=now)
            self._windows[caller_id] = window
        elif now - window.window_start > self._window_seconds:
            logger.info("Spend window elapsed for caller %s, resetting", caller_id)
            window.spent = Decimal("0")
            window.window_start = now
        return window
