# src/core/cancellation.py - v1
"""Per-run cancellation token.

One token is created per request and threaded through every stage and the
generation retry loop. Each suspension point awaits through the token, so
firing it aborts the in-flight network call instead of only suppressing
the response.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Awaitable, TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """The work was aborted because its token fired.

    ``partial_cost`` is what the aborted work had already been billed.
    """

    def __init__(self, reason: str, partial_cost: Decimal = Decimal("0")) -> None:
        self.reason = reason
        self.partial_cost = partial_cost
        super().__init__(f"Operation cancelled: {reason}")


class CancelToken:
    """Cooperative cancellation signal shared by one pipeline run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Fire the token. Idempotent; the first reason is kept."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self._reason or "cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        When the token fires, the underlying task is cancelled (aborting any
        network I/O it was waiting on) and ``OperationCancelled`` is raised.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled(self._reason or "cancelled")
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelled(self._reason or "cancelled")

    async def sleep(self, delay: float) -> None:
        """Sleep that wakes up early (and raises) when the token fires."""
        await self.run(asyncio.sleep(delay))
