# src/api/service.py - v1
"""Request flow: Timeout Guard -> Budget Guard -> Pipeline -> generation -> commit.

Usage:
    service = BuildService.from_settings(Settings())
    outcome = await service.build({"prompt": "...", "caller_id": "alice"})

Every request yields exactly one outcome. The pipeline and generation work
run in their own task; the caller waits on the Timeout Guard's outcome, so
a deadline that fires first answers the caller while the work settles in
the background. Whatever the outcome, the cost actually incurred is
committed to the Budget Guard once the work settles.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from nuggetwise.api.models import BuildFailure, BuildOutcome, BuildRequest, BuildSuccess
from nuggetwise.config.settings import Settings
from nuggetwise.core.cancellation import CancelToken, OperationCancelled
from nuggetwise.core.errors import (
    BudgetExceeded,
    NuggetwiseError,
    ProviderError,
    RequestTimeout,
    RequestValidationError,
    StageFailed,
)
from nuggetwise.generation.generator import generate_with_retry
from nuggetwise.generation.v0_client import V0Client
from nuggetwise.guards.budget_guard import BudgetGuard
from nuggetwise.guards.timeout_guard import PendingRequest, TimeoutGuard
from nuggetwise.llm.retry import RetryConfig
from nuggetwise.logging.context import set_request_context
from nuggetwise.pipeline.runner import Pipeline
from nuggetwise.tracking.call_logger import CallLogger

if TYPE_CHECKING:
    from nuggetwise.generation.base_client import BaseGenerationClient
    from nuggetwise.pipeline.models import StageResult

logger = logging.getLogger(__name__)


@dataclass
class _InFlight:
    caller_id: str
    incurred: Decimal = field(default_factory=lambda: Decimal("0"))


class BuildService:
    """Governs pipeline runs with a spend cap, a deadline and generation retries."""

    def __init__(
        self,
        settings: Settings,
        pipeline: Pipeline,
        generator: BaseGenerationClient,
        budget_guard: BudgetGuard | None = None,
        timeout_guard: TimeoutGuard | None = None,
        retry_config: RetryConfig | None = None,
        call_logger: CallLogger | None = None,
    ) -> None:
        self._settings = settings
        self._pipeline = pipeline
        self._generator = generator
        self._budget = budget_guard or BudgetGuard.from_settings(settings)
        self._timeouts = timeout_guard or TimeoutGuard(settings.request_max_time_ms)
        # Deadline outcomes are always BuildFailure
        self._timeouts.timeout_response = self._timeout_outcome
        self._retry = retry_config or RetryConfig.from_settings(settings)
        self.call_logger = call_logger
        self._inflight: dict[str, _InFlight] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> BuildService:
        call_logger = CallLogger(max_records=settings.tracking_max_call_records)
        return cls(
            settings=settings,
            pipeline=Pipeline.from_settings(settings, call_logger=call_logger),
            generator=V0Client.from_settings(settings),
            call_logger=call_logger,
        )

    @property
    def budget_guard(self) -> BudgetGuard:
        return self._budget

    @property
    def timeout_guard(self) -> TimeoutGuard:
        return self._timeouts

    @property
    def active_requests(self) -> int:
        return self._timeouts.active_requests

    async def build(self, request: BuildRequest | dict[str, Any]) -> BuildOutcome:
        """Handle one request and return its single outcome."""
        try:
            req = request if isinstance(request, BuildRequest) else BuildRequest.model_validate(request)
        except ValidationError as exc:
            err = RequestValidationError(
                "Invalid request", errors=[e["msg"] for e in exc.errors()]
            )
            logger.warning("Rejected malformed request: %s", exc.error_count())
            return _failure(err, None, Decimal("0"), None)

        request_id = uuid.uuid4().hex
        set_request_context(request_id, req.caller_id)
        logger.info("Request %s from caller %s", request_id, req.caller_id)

        token = CancelToken() if self._settings.cancel_on_timeout else None
        self._inflight[request_id] = _InFlight(req.caller_id)
        pending = self._timeouts.start(request_id, req.timeout_override_ms, cancel_token=token)

        decision = self._budget.admit(req.caller_id)
        if not decision.allowed:
            self._inflight.pop(request_id, None)
            err = BudgetExceeded(req.caller_id, decision.spent, decision.limit)
            self._timeouts.finish(request_id, _failure(err, request_id, Decimal("0"), Decimal("0")))
            return await pending.wait()

        task = asyncio.create_task(self._run(request_id, req, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return await pending.wait()

    async def drain(self) -> None:
        """Wait until every in-flight run has settled and committed its cost."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Release all deadline timers, then let in-flight work settle."""
        released = self._timeouts.cancel_all()
        logger.info("Shutting down: %d timer(s) released, %d run(s) in flight", released, len(self._tasks))
        await self.drain()

    async def _run(self, request_id: str, req: BuildRequest, token: CancelToken | None) -> None:
        inflight = self._inflight[request_id]
        set_request_context(request_id, req.caller_id)

        def track(result: StageResult) -> None:
            inflight.incurred += result.cost

        outcome: BuildOutcome | None = None
        try:
            run = await self._pipeline.execute(
                req.prompt,
                req.caller_id,
                request_id=request_id,
                budget_override=req.budget_override,
                timeout_override_ms=req.timeout_override_ms,
                cancel_token=token,
                on_result=track,
            )
            set_request_context(request_id, req.caller_id, run.run_id)

            failed = run.failed_stage
            if failed is not None:
                if failed.failure_kind == "cancelled":
                    err: NuggetwiseError = self._deadline_error(request_id, req)
                else:
                    err = StageFailed(
                        failed.stage,
                        failed.failure_kind or "provider_error",
                        failed.failure_reason or "",
                        run.total_cost,
                    )
                outcome = self._settled_failure(err, request_id, inflight)
                return

            generation = await generate_with_retry(
                self._generator,
                run.final_artifact.complete_prompt,
                req.model_tier,
                config=self._retry,
                cancel_token=token,
            )
            inflight.incurred += generation.cost
            outcome = BuildSuccess(
                request_id=request_id,
                run_id=run.run_id,
                final_artifact=run.final_artifact,
                generation=generation,
                pipeline_cost=run.total_cost,
                total_cost=inflight.incurred,
                total_elapsed_ms=run.total_elapsed_ms,
                remaining_budget=self._remaining_after(inflight),
            )
        except ProviderError as exc:
            inflight.incurred += exc.partial_cost
            outcome = self._settled_failure(exc, request_id, inflight)
        except OperationCancelled as exc:
            inflight.incurred += exc.partial_cost
            outcome = self._settled_failure(self._deadline_error(request_id, req), request_id, inflight)
        except Exception as exc:
            logger.exception("Unexpected failure in request %s", request_id)
            err = NuggetwiseError(f"Internal error: {exc}")
            outcome = self._settled_failure(err, request_id, inflight)
        finally:
            self._budget.commit(req.caller_id, inflight.incurred)
            self._inflight.pop(request_id, None)
            if outcome is None:
                outcome = _failure(
                    NuggetwiseError("Request aborted"), request_id, inflight.incurred, None
                )
            if not self._timeouts.finish(request_id, outcome):
                logger.info(
                    "Request %s already answered, discarding late result (cost %s committed)",
                    request_id,
                    inflight.incurred,
                )

    def _settled_failure(
        self, err: NuggetwiseError, request_id: str, inflight: _InFlight
    ) -> BuildFailure:
        return _failure(err, request_id, inflight.incurred, self._remaining_after(inflight))

    def _remaining_after(self, inflight: _InFlight) -> Decimal:
        """Remaining budget once this request's cost is committed."""
        return max(Decimal("0"), self._budget.remaining(inflight.caller_id) - inflight.incurred)

    def _deadline_error(self, request_id: str, req: BuildRequest) -> RequestTimeout:
        return RequestTimeout(request_id, req.timeout_override_ms or self._settings.request_max_time_ms)

    def _timeout_outcome(self, pending: PendingRequest) -> BuildFailure:
        inflight = self._inflight.get(pending.request_id)
        incurred = inflight.incurred if inflight else Decimal("0")
        remaining = self._remaining_after(inflight) if inflight else None
        return _failure(
            RequestTimeout(pending.request_id, pending.max_time_ms),
            pending.request_id,
            incurred,
            remaining,
        )


def _failure(
    err: NuggetwiseError,
    request_id: str | None,
    cost: Decimal,
    remaining: Decimal | None,
) -> BuildFailure:
    return BuildFailure(
        request_id=request_id,
        code=err.code,
        message=err.message,
        stage=err.stage,
        cost_incurred=cost,
        remaining_budget=remaining,
        details=err.details,
    )
