# src/pipeline/models.py - v2
"""Run-level models: StageResult, PipelineRun.

Both are immutable. A ``PipelineRun`` grows by returning a new copy with
one more ``StageResult`` appended, and is sealed once the pipeline halts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nuggetwise.core.errors import StageFailureKind


class StageResult(BaseModel):
    """Outcome of one stage invocation. Cost and elapsed time are always set."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stage: str
    succeeded: bool
    payload: Any = None
    failure_reason: str | None = None
    failure_kind: StageFailureKind | None = None
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    elapsed_ms: int = Field(default=0, ge=0)
    input_tokens: int = 0
    output_tokens: int = 0

    @classmethod
    def ok(cls, stage: str, payload: Any, cost: Decimal, elapsed_ms: int, **kwargs: Any) -> StageResult:
        return cls(stage=stage, succeeded=True, payload=payload, cost=cost, elapsed_ms=elapsed_ms, **kwargs)

    @classmethod
    def failed(
        cls,
        stage: str,
        kind: StageFailureKind,
        reason: str,
        cost: Decimal = Decimal("0"),
        elapsed_ms: int = 0,
        **kwargs: Any,
    ) -> StageResult:
        return cls(
            stage=stage,
            succeeded=False,
            failure_kind=kind,
            failure_reason=reason,
            cost=cost,
            elapsed_ms=elapsed_ms,
            **kwargs,
        )


class SealedRunError(RuntimeError):
    """Raised when mutating a PipelineRun after it was sealed."""


class PipelineRun(BaseModel):
    """One end-to-end execution of the stages for a single request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    request_id: str
    caller_id: str
    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    stage_results: tuple[StageResult, ...] = ()
    final_artifact: Any = None
    succeeded: bool = False
    sealed: bool = False

    @property
    def total_cost(self) -> Decimal:
        return sum((r.cost for r in self.stage_results), Decimal("0"))

    @property
    def total_elapsed_ms(self) -> int:
        return sum(r.elapsed_ms for r in self.stage_results)

    @property
    def failed_stage(self) -> StageResult | None:
        """The stage result that halted the run, if any."""
        for result in self.stage_results:
            if not result.succeeded:
                return result
        return None

    def append(self, result: StageResult) -> PipelineRun:
        """Return a copy with ``result`` appended."""
        if self.sealed:
            raise SealedRunError(f"Run {self.run_id} is sealed")
        return self.model_copy(update={"stage_results": (*self.stage_results, result)})

    def seal(self, final_artifact: Any = None) -> PipelineRun:
        """Return a sealed copy.

        The run succeeds only if at least one stage ran and every stage
        succeeded; a failed run never carries a final artifact.
        """
        if self.sealed:
            raise SealedRunError(f"Run {self.run_id} is already sealed")
        succeeded = bool(self.stage_results) and all(r.succeeded for r in self.stage_results)
        return self.model_copy(
            update={
                "sealed": True,
                "succeeded": succeeded,
                "final_artifact": final_artifact if succeeded else None,
                "finished_at": datetime.now(timezone.utc),
            }
        )
