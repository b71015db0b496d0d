# src/pipeline/runner.py - v2
"""Pipeline runner: execute the five stages in order for one request.

Each stage gets the accumulated state and its own completion client. The
runner appends every ``StageResult`` to the ``PipelineRun`` and halts on
the first failure; stages after a failed one are never invoked. The run is
sealed before it is returned, whatever the outcome.

The runner never retries a stage.
"""

from __future__ import annotations

import importlib
import logging
import time
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable

from nuggetwise.config.stages import STAGE_REGISTRY
from nuggetwise.llm.base_client import BaseLLMClient
from nuggetwise.llm.client_factory import create_llm_client
from nuggetwise.llm.config import resolve_llm
from nuggetwise.logging.context import set_run_context, set_stage_context
from nuggetwise.pipeline.models import PipelineRun, StageResult
from nuggetwise.pipeline.state import PipelineState

if TYPE_CHECKING:
    from nuggetwise.config.settings import Settings
    from nuggetwise.core.cancellation import CancelToken
    from nuggetwise.pipeline.stages.base_stage import BaseStage
    from nuggetwise.tracking.call_logger import CallLogger
    from nuggetwise.tracking.models import ModelPricing

logger = logging.getLogger(__name__)

LLMFactory = Callable[[str], BaseLLMClient]


def load_stages(class_paths: list[str] | None = None) -> list[BaseStage]:
    """Instantiate the configured stages, in execution order."""
    stages = []
    for path in class_paths or STAGE_REGISTRY:
        module_path, class_name = path.rsplit(".", 1)
        cls = getattr(importlib.import_module(module_path), class_name)
        stages.append(cls())
    return stages


class Pipeline:
    """Sequential five-stage pipeline.

    Args:
        stages: Stage instances in execution order (defaults to STAGE_REGISTRY).
        llm_factory: Callable(stage_name) -> BaseLLMClient, or a single client
            shared by every stage.
        settings: Used to build per-stage clients when no factory is given.
        call_logger: Optional call logger for tracking.
        pricing: Optional (provider, model) -> ModelPricing table.
    """

    def __init__(
        self,
        stages: list[BaseStage] | None = None,
        llm_factory: LLMFactory | BaseLLMClient | None = None,
        settings: Settings | None = None,
        call_logger: CallLogger | None = None,
        pricing: dict[tuple[str, str], ModelPricing] | None = None,
    ) -> None:
        self._stages = stages if stages is not None else load_stages()
        self._llm_factory = llm_factory
        self._settings = settings
        self._call_logger = call_logger
        self._pricing = pricing
        self._clients: dict[str, BaseLLMClient] = {}

    @classmethod
    def from_settings(cls, settings: Settings, call_logger: CallLogger | None = None) -> Pipeline:
        return cls(settings=settings, call_logger=call_logger)

    @property
    def stages(self) -> list[BaseStage]:
        return list(self._stages)

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self._stages]

    async def execute(
        self,
        prompt: str,
        caller_id: str,
        *,
        request_id: str | None = None,
        budget_override: Decimal | None = None,
        timeout_override_ms: int | None = None,
        cancel_token: CancelToken | None = None,
        on_result: Callable[[StageResult], None] | None = None,
    ) -> PipelineRun:
        """Run every stage in order, stopping at the first failure.

        ``on_result`` is called with each StageResult as soon as it is
        appended, so callers can track cost while the run is in flight.

        Returns:
            A sealed PipelineRun. ``final_artifact`` is the BuilderPrompt on
            success and None otherwise.
        """
        run = PipelineRun(request_id=request_id or uuid.uuid4().hex, caller_id=caller_id)
        set_run_context(run.run_id)
        state = PipelineState(
            prompt=prompt,
            caller_id=caller_id,
            budget_override=budget_override,
            timeout_override_ms=timeout_override_ms,
        )
        start_ns = time.monotonic_ns()

        try:
            for idx, stage in enumerate(self._stages):
                set_stage_context(stage.name)
                logger.info("Stage %d/%d: executing %s", idx + 1, len(self._stages), stage.name)

                result = await stage.run(
                    state,
                    self._get_llm(stage.name),
                    cancel_token=cancel_token,
                    call_logger=self._call_logger,
                    run_id=run.run_id,
                    pricing=self._pricing,
                    max_tokens=self._settings.llm_max_tokens if self._settings else None,
                )
                run = run.append(result)
                if on_result is not None:
                    on_result(result)

                if not result.succeeded:
                    logger.error(
                        "Stage '%s' failed (%s): %s",
                        stage.name,
                        result.failure_kind,
                        result.failure_reason,
                    )
                    break

                state.record(stage.name, stage.state_key, result.payload)
                logger.info(
                    "Stage '%s' completed: cost=%s, tokens=%d, time=%dms",
                    stage.name,
                    result.cost,
                    result.input_tokens + result.output_tokens,
                    result.elapsed_ms,
                )
        finally:
            set_stage_context(None)

        run = run.seal(final_artifact=state.builder_prompt)
        logger.info(
            "Pipeline %s: %d/%d stages, cost=%s, %dms",
            "complete" if run.succeeded else "halted",
            len(state.completed_stages),
            len(self._stages),
            run.total_cost,
            (time.monotonic_ns() - start_ns) // 1_000_000,
        )
        return run

    def _get_llm(self, stage_name: str) -> BaseLLMClient:
        """Get the completion client for a stage."""
        if isinstance(self._llm_factory, BaseLLMClient):
            return self._llm_factory
        if self._llm_factory is not None:
            return self._llm_factory(stage_name)
        if self._settings is None:
            raise RuntimeError(f"No LLM factory configured for stage '{stage_name}'")
        if stage_name not in self._clients:
            assignment = resolve_llm(stage_name, self._settings)
            self._clients[stage_name] = create_llm_client(
                assignment.provider, assignment.model, settings=self._settings
            )
        return self._clients[stage_name]


def describe_stages(pipeline: Pipeline) -> list[dict[str, Any]]:
    """Summarise the configured stages (name, state key, temperature)."""
    return [
        {"name": s.name, "state_key": s.state_key, "temperature": s.temperature}
        for s in pipeline.stages
    ]
