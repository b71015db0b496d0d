# src/core/errors.py - v1
"""Typed outcomes surfaced at the request boundary, plus provider failure kinds.

Every failure a caller can observe is one of the ``NuggetwiseError``
subclasses below. Each carries a stable ``code`` and enough structured
detail (stage, cost incurred so far, remaining budget) for the caller to
decide whether to retry the whole request.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

ProviderFailureKind = Literal[
    "authentication",
    "rate_limit",
    "timeout",
    "server_error",
    "malformed_response",
    "unknown",
]

StageFailureKind = Literal["provider_error", "malformed_reply", "rejected", "cancelled"]


class ProviderCallError(Exception):
    """A single failed call to an external provider, already classified.

    Raised by the completion and generation adapters so that callers never
    have to inspect vendor SDK exceptions.

    Args:
        message: Human-readable description.
        kind: Failure class.
        billed_cost: Cost the provider reported before failing (0 when unknown).
        status_code: HTTP status, when the failure came from an HTTP response.
    """

    def __init__(
        self,
        message: str,
        kind: ProviderFailureKind = "unknown",
        billed_cost: Decimal = Decimal("0"),
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.billed_cost = billed_cost
        self.status_code = status_code
        super().__init__(message)


class NuggetwiseError(Exception):
    """Base class for all typed request outcomes."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, stage: str | None = None, **details: Any) -> None:
        self.message = message
        self.stage = stage
        self.details = details
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        """Boundary failure shape: {code, message, stage?, details}."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.stage is not None:
            payload["stage"] = self.stage
        if self.details:
            payload["details"] = self.details
        return payload


class RequestValidationError(NuggetwiseError):
    """Malformed request input. Rejected before any cost is incurred."""

    code = "VALIDATION_ERROR"


class BudgetExceeded(NuggetwiseError):
    """Admission-time rejection. Zero cost, remaining is always 0."""

    code = "BUDGET_EXCEEDED"

    def __init__(self, caller_id: str, spent: Decimal, limit: Decimal) -> None:
        self.caller_id = caller_id
        self.spent = spent
        self.limit = limit
        self.remaining = Decimal("0")
        super().__init__(
            f"Daily budget limit of ${limit} exceeded",
            caller_id=caller_id,
            spent=str(spent),
            limit=str(limit),
            remaining="0",
        )


class RequestTimeout(NuggetwiseError):
    """Deadline fired before the work completed."""

    code = "REQUEST_TIMEOUT"

    def __init__(self, request_id: str, max_time_ms: int) -> None:
        self.request_id = request_id
        self.max_time_ms = max_time_ms
        super().__init__(
            f"Request timed out after {max_time_ms}ms",
            request_id=request_id,
            max_time_ms=max_time_ms,
        )


class StageFailed(NuggetwiseError):
    """A pipeline stage reported failure; the pipeline halted there."""

    code = "STAGE_FAILED"

    def __init__(
        self,
        stage: str,
        failure_kind: StageFailureKind,
        reason: str,
        cost_so_far: Decimal = Decimal("0"),
    ) -> None:
        self.failure_kind = failure_kind
        self.reason = reason
        self.cost_so_far = cost_so_far
        super().__init__(
            f"Stage '{stage}' failed ({failure_kind}): {reason}",
            stage=stage,
            failure_kind=failure_kind,
            cost_so_far=str(cost_so_far),
        )


class ProviderError(NuggetwiseError):
    """Terminal failure of the generation call, after retries or on a non-retryable class.

    ``partial_cost`` is the cost the provider reported before failing,
    summed across attempts. Callers commit it; it is never assumed zero.
    """

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        operation: str,
        failure_class: ProviderFailureKind,
        attempts: int,
        retryable: bool,
        last_error: Exception,
        partial_cost: Decimal = Decimal("0"),
    ) -> None:
        self.operation = operation
        self.failure_class = failure_class
        self.attempts = attempts
        self.retryable = retryable
        self.last_error = last_error
        self.partial_cost = partial_cost
        super().__init__(
            f"'{operation}' failed after {attempts} attempt(s) ({failure_class}): {last_error}",
            failure_class=failure_class,
            attempts=attempts,
            retryable=retryable,
            partial_cost=str(partial_cost),
        )
