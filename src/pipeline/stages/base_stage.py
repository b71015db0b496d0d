# src/pipeline/stages/base_stage.py - v1
"""Standard stage interface.

A stage builds a prompt from the accumulated pipeline state, makes exactly
one completion call, prices it, and parses the reply into its output
schema. It never raises for provider or parse failures and never retries:
every outcome becomes a ``StageResult`` that carries the cost and elapsed
time actually incurred.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from nuggetwise.config.stages import STAGE_TEMPERATURES
from nuggetwise.core.cancellation import OperationCancelled
from nuggetwise.core.errors import ProviderCallError
from nuggetwise.llm.models import Message
from nuggetwise.pipeline.models import StageResult
from nuggetwise.tracking.cost_calculator import compute_cost

if TYPE_CHECKING:
    from nuggetwise.core.cancellation import CancelToken
    from nuggetwise.llm.base_client import BaseLLMClient
    from nuggetwise.pipeline.state import PipelineState
    from nuggetwise.tracking.call_logger import CallLogger
    from nuggetwise.tracking.models import ModelPricing

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


class MalformedReply(ValueError):
    """The reply could not be turned into the stage's output schema."""


class BaseStage(ABC):
    """Standard interface for all pipeline stages."""

    max_tokens: int = 4000

    def __init__(self) -> None:
        self._system_prompt: str | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique stage identifier (e.g. 'intent_analysis')."""

    @property
    @abstractmethod
    def output_schema(self) -> type[BaseModel]:
        """Pydantic model the reply is parsed into."""

    @property
    @abstractmethod
    def state_key(self) -> str:
        """PipelineState attribute the parsed payload is stored under."""

    @property
    def temperature(self) -> float:
        return STAGE_TEMPERATURES.get(self.name, 0.7)

    @property
    def prompt_file(self) -> Path:
        return _PROMPTS_DIR / f"{self.name}.txt"

    @property
    def system_prompt(self) -> str:
        """Fixed per-stage instruction template, loaded once."""
        if self._system_prompt is None:
            self._system_prompt = self.prompt_file.read_text(encoding="utf-8")
        return self._system_prompt

    @abstractmethod
    def build_prompt(self, state: PipelineState) -> str:
        """Build the request-specific user prompt from upstream outputs."""

    def parse_reply(self, content: str) -> BaseModel:
        """Parse a JSON reply (optionally fenced) into the output schema."""
        text = strip_code_fences(content)
        if not text:
            raise MalformedReply("empty reply")
        try:
            return self.output_schema.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise MalformedReply(str(exc)) from exc

    def check(self, payload: BaseModel, state: PipelineState) -> str | None:
        """Semantic check on a well-formed payload.

        Returns a rejection reason, or None to accept.
        """
        return None

    async def run(
        self,
        state: PipelineState,
        llm: BaseLLMClient,
        cancel_token: CancelToken | None = None,
        call_logger: CallLogger | None = None,
        run_id: str | None = None,
        pricing: dict[tuple[str, str], ModelPricing] | None = None,
        max_tokens: int | None = None,
    ) -> StageResult:
        """Execute the stage once. Never raises for provider or reply failures."""
        start = time.monotonic()
        prompt = self.build_prompt(state)
        call = llm.complete(
            messages=[Message(role="user", content=prompt)],
            system=self.system_prompt,
            max_tokens=max_tokens or self.max_tokens,
            temperature=self.temperature,
        )

        try:
            if cancel_token is not None:
                response = await cancel_token.run(call)
            else:
                response = await call
        except OperationCancelled as exc:
            return StageResult.failed(self.name, "cancelled", exc.reason, elapsed_ms=_elapsed_ms(start))
        except ProviderCallError as exc:
            logger.error("Stage '%s' provider error (%s): %s", self.name, exc.kind, exc)
            return StageResult.failed(
                self.name,
                "provider_error",
                f"{exc.kind}: {exc}",
                cost=exc.billed_cost,
                elapsed_ms=_elapsed_ms(start),
            )
        except Exception as exc:
            logger.exception("Stage '%s' completion call raised", self.name)
            return StageResult.failed(
                self.name, "provider_error", f"unknown: {exc}", elapsed_ms=_elapsed_ms(start)
            )

        elapsed_ms = _elapsed_ms(start)
        cost = compute_cost(
            response.provider, response.model, response.input_tokens, response.output_tokens, pricing
        )
        usage: dict[str, Any] = {
            "input_tokens": response.input_tokens,
            "output_tokens": response.output_tokens,
        }

        try:
            payload = self.parse_reply(response.content)
        except MalformedReply as exc:
            logger.warning("Stage '%s' reply could not be parsed: %s", self.name, exc)
            _log_call(call_logger, self.name, response, cost, "malformed", run_id)
            return StageResult.failed(
                self.name, "malformed_reply", f"malformed reply: {exc}", cost, elapsed_ms, **usage
            )

        _log_call(call_logger, self.name, response, cost, "success", run_id)

        reason = self.check(payload, state)
        if reason is not None:
            logger.warning("Stage '%s' rejected the request: %s", self.name, reason)
            return StageResult.failed(
                self.name, "rejected", reason, cost, elapsed_ms, payload=payload, **usage
            )

        return StageResult.ok(self.name, payload, cost, elapsed_ms, **usage)


def strip_code_fences(content: str) -> str:
    """Remove Markdown code fences around a reply."""
    text = content.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


def _log_call(
    call_logger: CallLogger | None,
    stage: str,
    response: Any,
    cost: Decimal,
    status: str,
    run_id: str | None,
) -> None:
    if call_logger is not None:
        call_logger.record(stage, response, cost, status=status, run_id=run_id)
