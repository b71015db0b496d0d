# tests/unit/api/test_unit_service.py - v1
"""Tests for api/service.py and api/models.py - request flow and typed outcomes."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from nuggetwise.api.models import BuildFailure, BuildRequest, BuildSuccess
from nuggetwise.api.service import BuildService
from nuggetwise.config.settings import Settings
from nuggetwise.core.errors import ProviderCallError
from nuggetwise.generation.v0_client import V0Client
from nuggetwise.guards.timeout_guard import TimeoutGuard
from nuggetwise.pipeline.runner import Pipeline


@pytest.fixture
def make_service(settings, stage_clients, pricing, make_generator):
    def _make(generator=None, **kwargs) -> BuildService:
        pipeline = Pipeline(llm_factory=lambda name: stage_clients[name], pricing=pricing)
        return BuildService(
            settings=kwargs.pop("settings", settings),
            pipeline=pipeline,
            generator=generator or make_generator(),
            **kwargs,
        )

    return _make


class TestBuildRequest:
    def test_blank_prompt_rejected(self):
        with pytest.raises(ValidationError):
            BuildRequest(prompt="   ", caller_id="alice")

    def test_non_positive_overrides_rejected(self):
        with pytest.raises(ValidationError):
            BuildRequest(prompt="x", caller_id="alice", timeout_override_ms=0)
        with pytest.raises(ValidationError):
            BuildRequest(prompt="x", caller_id="alice", budget_override=Decimal("-1"))


class TestBuildService:
    @pytest.mark.asyncio
    async def test_success(self, make_service):
        service = make_service()
        outcome = await service.build({"prompt": "Create a todo app", "caller_id": "alice"})

        assert isinstance(outcome, BuildSuccess)
        assert outcome.pipeline_cost == Decimal("0.05")
        assert outcome.total_cost == Decimal("0.10")
        assert outcome.remaining_budget == Decimal("9.90")
        assert outcome.generation.files[0].name == "TodoApp.tsx"
        assert "## TodoApp" in outcome.final_artifact.complete_prompt
        assert service.budget_guard.spent("alice") == Decimal("0.10")
        assert service.active_requests == 0

    @pytest.mark.asyncio
    async def test_validation_error_costs_nothing(self, make_service, stage_clients):
        service = make_service()
        outcome = await service.build({"prompt": "", "caller_id": "alice"})

        assert isinstance(outcome, BuildFailure)
        assert outcome.code == "VALIDATION_ERROR"
        assert outcome.cost_incurred == Decimal("0")
        assert stage_clients["intent_analysis"].calls == []
        assert service.budget_guard.spent("alice") == Decimal("0")

    @pytest.mark.asyncio
    async def test_budget_exceeded(self, make_service, stage_clients):
        service = make_service()
        service.budget_guard.commit("alice", Decimal("10.00"))
        outcome = await service.build(BuildRequest(prompt="x", caller_id="alice"))

        assert outcome.code == "BUDGET_EXCEEDED"
        assert outcome.remaining_budget == Decimal("0")
        assert outcome.cost_incurred == Decimal("0")
        assert stage_clients["intent_analysis"].calls == []
        assert service.active_requests == 0

    @pytest.mark.asyncio
    async def test_stage_failure(self, make_service, stage_clients):
        stage_clients["pattern_selection"].content = "not json"
        service = make_service()
        outcome = await service.build({"prompt": "x", "caller_id": "alice"})

        assert outcome.code == "STAGE_FAILED"
        assert outcome.stage == "pattern_selection"
        assert outcome.details["failure_kind"] == "malformed_reply"
        assert outcome.cost_incurred == Decimal("0.02")
        assert service.budget_guard.spent("alice") == Decimal("0.02")

    @pytest.mark.asyncio
    async def test_terminal_provider_error(self, make_service, make_generator):
        generator = make_generator(failures=[ProviderCallError("401", kind="authentication")])
        service = make_service(generator=generator)
        outcome = await service.build({"prompt": "x", "caller_id": "alice"})

        assert outcome.code == "PROVIDER_ERROR"
        assert outcome.details["failure_class"] == "authentication"
        assert outcome.details["retryable"] is False
        assert len(generator.prompts) == 1
        assert service.budget_guard.spent("alice") == Decimal("0.05")

    @pytest.mark.asyncio
    async def test_partial_generation_cost_committed(self, make_service, make_generator, settings):
        failures = [
            ProviderCallError("slow", kind="timeout", billed_cost=Decimal("0.01")) for _ in range(2)
        ]
        strict = settings.model_copy(update={"generation_max_retries": 1})
        service = make_service(generator=make_generator(failures=failures), settings=strict)
        outcome = await service.build({"prompt": "x", "caller_id": "alice"})

        assert outcome.code == "PROVIDER_ERROR"
        assert outcome.cost_incurred == Decimal("0.07")
        assert service.budget_guard.spent("alice") == Decimal("0.07")

    @pytest.mark.asyncio
    async def test_shutdown_releases_and_drains(self, make_service):
        service = make_service()
        outcome = await service.build({"prompt": "x", "caller_id": "alice"})
        await service.shutdown()
        assert outcome.success is True
        assert service.timeout_guard.active_requests == 0

    @pytest.mark.asyncio
    async def test_injected_timeout_guard_yields_build_failure(self, make_service, stage_clients):
        stage_clients["intent_analysis"].delay_s = 0.5
        service = make_service(timeout_guard=TimeoutGuard(5_000))

        outcome = await service.build(
            {"prompt": "Create a todo app", "caller_id": "alice", "timeout_override_ms": 50}
        )
        await service.drain()

        assert isinstance(outcome, BuildFailure)
        assert outcome.code == "REQUEST_TIMEOUT"
        assert outcome.request_id is not None

    def test_from_settings(self):
        service = BuildService.from_settings(
            Settings(_env_file=None, v0_api_key="k", tracking_max_call_records=50)
        )
        assert isinstance(service._generator, V0Client)
        assert service.call_logger is not None
        assert service.call_logger.max_records == 50
