# src/llm/retry.py - v2
"""Bounded, classified retry with exponential backoff.

Wraps only the downstream generation call. Analysis stages never retry.
Authentication failures are terminal and surface immediately; rate limits,
timeouts and server errors are retried up to ``max_retries`` times.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

from nuggetwise.core.cancellation import OperationCancelled
from nuggetwise.core.errors import ProviderCallError, ProviderError, ProviderFailureKind

if TYPE_CHECKING:
    from nuggetwise.config.settings import Settings
    from nuggetwise.core.cancellation import CancelToken

logger = logging.getLogger(__name__)

RetryDecision = Literal["terminal", "retryable"]
Classifier = Callable[[Exception], "tuple[ProviderFailureKind, RetryDecision]"]

RETRYABLE_KINDS: frozenset[str] = frozenset({"rate_limit", "timeout", "server_error"})


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy for the generation call."""

    max_retries: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    max_delay_s: float = 30.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryConfig:
        return cls(
            max_retries=settings.generation_max_retries,
            base_delay_s=settings.retry_base_delay_s,
            backoff_factor=settings.retry_backoff_factor,
            max_delay_s=settings.retry_max_delay_s,
            jitter=settings.retry_jitter,
        )


def classify_error(error: Exception) -> tuple[ProviderFailureKind, RetryDecision]:
    """Classify an exception into a failure kind and a retry decision.

    Adapters raise pre-classified ``ProviderCallError``; anything else is
    classified from its type name and message.
    """
    if isinstance(error, ProviderCallError):
        kind = error.kind
    else:
        kind = _classify_message(error)
    return kind, ("retryable" if kind in RETRYABLE_KINDS else "terminal")


def _classify_message(error: Exception) -> ProviderFailureKind:
    msg = str(error).lower()
    name = type(error).__name__.lower()

    if "401" in msg or "403" in msg or "unauthorized" in msg or "api key" in msg:
        return "authentication"
    if "429" in msg or "rate" in msg:
        return "rate_limit"
    if "timeout" in name or "timed out" in msg or "timeout" in msg:
        return "timeout"
    if any(c in msg for c in ("500", "502", "503", "504", "server")):
        return "server_error"
    if "json" in msg or "parse" in msg or "decode" in msg:
        return "malformed_response"
    return "unknown"


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay before retry number ``attempt`` (0-based), capped at max_delay_s."""
    delay = min(config.base_delay_s * (config.backoff_factor ** attempt), config.max_delay_s)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "generate",
    config: RetryConfig | None = None,
    classify: Classifier = classify_error,
    cancel_token: CancelToken | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async call with classified retries.

    Raises:
        ProviderError: On a terminal failure (``retryable=False``, one attempt)
            or once retries are exhausted (``retryable=True``). Its
            ``partial_cost`` sums whatever the failed attempts billed.
        OperationCancelled: If ``cancel_token`` fires during a call or a backoff.
            Its ``partial_cost`` carries what the aborted attempts billed.
    """
    config = config or RetryConfig()
    attempts = 0
    partial_cost = Decimal("0")

    while True:
        try:
            if cancel_token is not None:
                return await cancel_token.run(fn(*args, **kwargs))
            return await fn(*args, **kwargs)
        except Exception as e:
            billed = getattr(e, "billed_cost", Decimal("0"))
            # Cancellation is not a provider failure, but what was billed is kept
            if cancel_token is not None and cancel_token.cancelled:
                raise OperationCancelled(
                    cancel_token.reason or "cancelled", partial_cost + billed
                ) from e
            attempts += 1
            partial_cost += billed
            kind, decision = classify(e)

            if decision == "terminal":
                logger.error(
                    "'%s' failed with terminal %s error (attempt %d), not retrying: %s",
                    operation, kind, attempts, e,
                )
                raise ProviderError(operation, kind, attempts, False, e, partial_cost) from e

            if attempts > config.max_retries:
                logger.error(
                    "'%s' exhausted %d retries (%s): %s",
                    operation, config.max_retries, kind, e,
                )
                raise ProviderError(operation, kind, attempts, True, e, partial_cost) from e

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "'%s' - %s (attempt %d/%d), retrying in %.1fs",
                operation, kind, attempts, config.max_retries, delay,
            )
            if cancel_token is not None:
                try:
                    await cancel_token.sleep(delay)
                except OperationCancelled as exc:
                    raise OperationCancelled(exc.reason, partial_cost) from exc
            else:
                await asyncio.sleep(delay)
