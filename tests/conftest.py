# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides scripted completion clients, canned stage replies, a flat price
table and a fake generation client. No network access: all I/O is faked.
"""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Any, Callable

import pytest

from nuggetwise.config.settings import Settings
from nuggetwise.core.errors import ProviderCallError
from nuggetwise.generation.base_client import BaseGenerationClient
from nuggetwise.generation.models import GeneratedFile, GenerationResult
from nuggetwise.llm.base_client import BaseLLMClient
from nuggetwise.llm.models import LLMResponse, Message
from nuggetwise.tracking.models import ModelPricing


# === FAKES ===


class ScriptedLLM(BaseLLMClient):
    """Completion client that returns one canned reply (or raises)."""

    def __init__(
        self,
        content: str = "",
        input_tokens: int = 1000,
        output_tokens: int = 0,
        delay_s: float = 0.0,
        error: Exception | None = None,
        provider: str = "test",
        model: str = "flat",
    ) -> None:
        self.content = content
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.delay_s = delay_s
        self.error = error
        self._provider = provider
        self._model = model
        self.calls: list[dict[str, Any]] = []
        self.finished = 0

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        self.calls.append({
            "prompt": messages[-1].content,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        self.finished += 1
        return LLMResponse(
            content=self.content,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            model=self._model,
            provider=self._provider,
            latency_ms=int(self.delay_s * 1000),
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model_name(self) -> str:
        return self._model


class FakeGenerator(BaseGenerationClient):
    """Generation client that fails with the scripted errors, then succeeds."""

    def __init__(
        self,
        failures: list[Exception] | None = None,
        cost: Decimal = Decimal("0.05"),
        delay_s: float = 0.0,
    ) -> None:
        self.failures = list(failures or [])
        self.cost = cost
        self.delay_s = delay_s
        self.prompts: list[str] = []

    async def generate(self, prompt_text: str, model_tier: str | None = None) -> GenerationResult:
        self.prompts.append(prompt_text)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.failures:
            raise self.failures.pop(0)
        return GenerationResult(
            id=f"chat_{len(self.prompts)}",
            preview_url="https://v0.dev/chat/demo",
            files=[GeneratedFile(name="TodoApp.tsx", content="export default function TodoApp() {}")],
            cost=self.cost,
            model_tier=model_tier or "v0-1.5-sm",
        )

    @property
    def provider_name(self) -> str:
        return "fake"


# === FIXTURES: Canned stage replies ===


INTENT_REPLY: dict[str, Any] = {
    "primaryIntent": "todo app",
    "secondaryIntents": ["dark mode"],
    "complexity": "simple",
    "estimatedComponents": 3,
    "features": ["add task", "complete task", "dark mode"],
    "targetAudience": "individuals",
    "platform": "web",
    "urgency": "medium",
}

PATTERNS_REPLY: dict[str, Any] = {
    "primaryPattern": {
        "name": "List View",
        "description": "Single list with inline actions",
        "components": ["TaskList", "TaskForm"],
        "layout": "single column",
        "navigation": "none",
        "darkMode": True,
    },
    "layoutStrategy": "single column",
    "navigationStrategy": "none",
    "recommendedComponents": ["TaskList", "TaskForm", "ThemeToggle"],
}

VALIDATION_OK_REPLY: dict[str, Any] = {
    "isValid": True,
    "issues": [{"type": "warning", "message": "no persistence requested", "severity": "low"}],
    "recommendations": ["store tasks locally"],
    "complexityAssessment": "simple",
    "estimatedBuildTime": 5,
    "estimatedCost": 0.1,
    "riskLevel": "low",
    "suggestedMode": "quick-build",
}

VALIDATION_REJECT_REPLY: dict[str, Any] = {
    "isValid": False,
    "issues": [{"type": "error", "message": "unsupported intent category", "severity": "high"}],
    "complexityAssessment": "complex",
}

REQUIREMENTS_REPLY: dict[str, Any] = {
    "components": [
        {"name": "TaskList", "templateId": "list", "milestone": 1},
        {"name": "TaskForm", "templateId": "form", "milestone": 1},
    ],
    "layout": {"type": "single-page", "structure": "header + list", "responsive": True, "darkMode": True},
    "navigation": {"type": "none"},
    "styling": {"theme": "modern", "colors": ["#111827"], "typography": "Inter", "spacing": "4px grid"},
    "interactions": {"animations": ["fade"], "hoverEffects": ["highlight"]},
    "responsive": {"breakpoints": ["sm", "md", "lg"]},
}

BUILDER_REPLY = """## TodoApp

**Layout:** single page with a header and the task list

**Styling:** dark theme, Tailwind

**Interactions:** let users add and complete tasks

**Accessibility:** keyboard navigation

**Responsive:** mobile first
"""


@pytest.fixture
def pricing() -> dict[tuple[str, str], ModelPricing]:
    """Flat price: 0.01 per 1K input tokens, output free."""
    return {
        ("test", "flat"): ModelPricing(
            provider="test",
            model="flat",
            input_price_per_1k=Decimal("0.01"),
            output_price_per_1k=Decimal("0"),
        )
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        budget_max_cost=Decimal("10.00"),
        request_max_time_ms=5_000,
        retry_base_delay_s=0.01,
        retry_max_delay_s=0.05,
        retry_jitter=False,
    )


@pytest.fixture
def stage_replies() -> dict[str, str]:
    """Valid reply text per stage, in pipeline order."""
    return {
        "intent_analysis": json.dumps(INTENT_REPLY),
        "pattern_selection": json.dumps(PATTERNS_REPLY),
        "validation": json.dumps(VALIDATION_OK_REPLY),
        "requirement_synthesis": json.dumps(REQUIREMENTS_REPLY),
        "prompt_building": BUILDER_REPLY,
    }


@pytest.fixture
def make_llm() -> Callable[..., ScriptedLLM]:
    return ScriptedLLM


@pytest.fixture
def make_generator() -> Callable[..., FakeGenerator]:
    return FakeGenerator


@pytest.fixture
def stage_clients(stage_replies: dict[str, str]) -> dict[str, ScriptedLLM]:
    """One scripted client per stage; each call costs 0.01 under ``pricing``."""
    return {name: ScriptedLLM(content=reply) for name, reply in stage_replies.items()}


@pytest.fixture
def retryable_error() -> Callable[[str], ProviderCallError]:
    def _make(kind: str = "rate_limit") -> ProviderCallError:
        return ProviderCallError(f"simulated {kind}", kind=kind)  # type: ignore[arg-type]

    return _make
