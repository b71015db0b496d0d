# src/guards/timeout_guard.py - v1
"""Per-request deadline with a single outcome.

``start`` arms a timer for a request id; the first of the timer firing or
``finish`` being called decides the outcome the caller receives, and the
other is discarded. All methods run on the event loop thread, so each
check-and-mark on ``responded`` happens without an intervening await.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from nuggetwise.core.errors import RequestTimeout

if TYPE_CHECKING:
    from nuggetwise.core.cancellation import CancelToken

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """Deadline bookkeeping for one in-flight request."""

    request_id: str
    max_time_ms: int
    deadline: float  # event loop time
    outcome: asyncio.Future[Any]
    responded: bool = False
    cancel_token: CancelToken | None = None
    _handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    def release(self) -> None:
        """Cancel the deadline timer, if still armed."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def wait(self) -> Any:
        """Wait for the single outcome delivered to the caller."""
        return await asyncio.shield(self.outcome)


def _default_timeout_response(pending: PendingRequest) -> Any:
    return RequestTimeout(pending.request_id, pending.max_time_ms)


class TimeoutGuard:
    """Arm and settle per-request deadlines.

    Args:
        max_time_ms: Default deadline for requests that do not override it.
        timeout_response: Builds the outcome delivered when a deadline fires.
    """

    def __init__(
        self,
        max_time_ms: int,
        timeout_response: Callable[[PendingRequest], Any] = _default_timeout_response,
    ) -> None:
        if max_time_ms <= 0:
            raise ValueError(f"max_time_ms must be positive, got {max_time_ms}")
        self._max_time_ms = max_time_ms
        self._timeout_response = timeout_response
        self._pending: dict[str, PendingRequest] = {}

    @property
    def max_time_ms(self) -> int:
        return self._max_time_ms

    @property
    def timeout_response(self) -> Callable[[PendingRequest], Any]:
        return self._timeout_response

    @timeout_response.setter
    def timeout_response(self, factory: Callable[[PendingRequest], Any]) -> None:
        self._timeout_response = factory

    @property
    def active_requests(self) -> int:
        return len(self._pending)

    def pending_ids(self) -> list[str]:
        return list(self._pending)

    def start(
        self,
        request_id: str,
        max_time_ms: int | None = None,
        cancel_token: CancelToken | None = None,
    ) -> PendingRequest:
        """Register ``request_id`` and arm its deadline.

        When ``cancel_token`` is given it is fired together with the
        deadline so the in-flight work is aborted.
        """
        if request_id in self._pending:
            raise ValueError(f"Request {request_id} is already pending")
        budget_ms = max_time_ms if max_time_ms is not None else self._max_time_ms
        if budget_ms <= 0:
            raise ValueError(f"max_time_ms must be positive, got {budget_ms}")

        loop = asyncio.get_running_loop()
        pending = PendingRequest(
            request_id=request_id,
            max_time_ms=budget_ms,
            deadline=loop.time() + budget_ms / 1000,
            outcome=loop.create_future(),
            cancel_token=cancel_token,
        )
        pending._handle = loop.call_later(budget_ms / 1000, self._fire, request_id)
        self._pending[request_id] = pending
        logger.debug("Deadline armed for request %s: %dms", request_id, budget_ms)
        return pending

    def finish(self, request_id: str, response: Any) -> bool:
        """Deliver the real outcome for ``request_id``.

        Returns:
            True if ``response`` reached the caller, False if the deadline
            already fired and ``response`` was discarded.
        """
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.responded:
            return False
        pending.responded = True
        pending.release()
        if not pending.outcome.done():
            pending.outcome.set_result(response)
        return True

    def cancel_all(self) -> int:
        """Release every outstanding deadline timer. Returns how many were released.

        Pending entries stay registered so in-flight work can still deliver
        its outcome through ``finish``.
        """
        released = 0
        for pending in list(self._pending.values()):
            if pending._handle is not None:
                pending.release()
                released += 1
        if released:
            logger.info("Released %d pending deadline timer(s)", released)
        return released

    def _fire(self, request_id: str) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.responded:
            return
        pending.responded = True
        pending._handle = None
        if not pending.outcome.done():
            pending.outcome.set_result(self._timeout_response(pending))
        if pending.cancel_token is not None:
            pending.cancel_token.cancel(f"deadline of {pending.max_time_ms}ms exceeded")
        logger.warning("Request %s timed out after %dms", request_id, pending.max_time_ms)
