# tests/unit/pipeline/test_unit_runner.py - v1
"""Tests for pipeline/runner.py - sequential execution and short-circuiting."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from nuggetwise.config.settings import Settings
from nuggetwise.llm.adapters.openai_adapter import OpenAIAdapter
from nuggetwise.pipeline.runner import Pipeline, describe_stages, load_stages
from nuggetwise.pipeline.schemas import BuilderPrompt
from nuggetwise.tracking.call_logger import CallLogger
from tests.conftest import VALIDATION_REJECT_REPLY


class TestLoadStages:
    def test_default_order(self):
        names = [s.name for s in load_stages()]
        assert names == [
            "intent_analysis",
            "pattern_selection",
            "validation",
            "requirement_synthesis",
            "prompt_building",
        ]


class TestPipeline:
    @pytest.mark.asyncio
    async def test_all_stages_succeed(self, stage_clients, pricing):
        call_logger = CallLogger()
        pipeline = Pipeline(
            llm_factory=lambda name: stage_clients[name], call_logger=call_logger, pricing=pricing
        )
        run = await pipeline.execute("Create a todo app with dark mode", "alice")

        assert run.sealed is True
        assert run.succeeded is True
        assert isinstance(run.final_artifact, BuilderPrompt)
        assert [r.stage for r in run.stage_results] == pipeline.stage_names
        assert run.total_cost == Decimal("0.05")
        assert len(call_logger.records_for_run(run.run_id)) == 5

    @pytest.mark.asyncio
    async def test_later_stages_see_all_upstream_outputs(self, stage_clients, pricing):
        pipeline = Pipeline(llm_factory=lambda name: stage_clients[name], pricing=pricing)
        await pipeline.execute("Create a todo app", "alice")

        synth_prompt = stage_clients["requirement_synthesis"].calls[0]["prompt"]
        assert "Primary Intent: todo app" in synth_prompt
        assert "Primary Pattern: List View" in synth_prompt
        assert "Suggested Mode: quick-build" in synth_prompt

    @pytest.mark.asyncio
    async def test_short_circuits_on_failure(self, stage_clients, pricing):
        stage_clients["validation"].content = json.dumps(VALIDATION_REJECT_REPLY)
        pipeline = Pipeline(llm_factory=lambda name: stage_clients[name], pricing=pricing)
        run = await pipeline.execute("Build a crypto miner", "alice")

        assert run.succeeded is False
        assert run.final_artifact is None
        assert run.failed_stage.stage == "validation"
        assert len(run.stage_results) == 3
        assert run.total_cost == Decimal("0.03")
        assert stage_clients["requirement_synthesis"].calls == []
        assert stage_clients["prompt_building"].calls == []

    @pytest.mark.asyncio
    async def test_on_result_sees_each_stage(self, stage_clients, pricing):
        seen = []
        pipeline = Pipeline(llm_factory=lambda name: stage_clients[name], pricing=pricing)
        await pipeline.execute("Create a todo app", "alice", on_result=seen.append)
        assert len(seen) == 5

    @pytest.mark.asyncio
    async def test_single_shared_client(self, make_llm, stage_replies):
        llm = make_llm(content=stage_replies["intent_analysis"])
        pipeline = Pipeline(llm_factory=llm)
        run = await pipeline.execute("Create a todo app", "alice")
        # Every stage receives the intent reply; pattern selection cannot parse it
        assert run.failed_stage.stage == "pattern_selection"
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_max_tokens_from_settings(self, stage_clients):
        settings = Settings(_env_file=None, llm_max_tokens=1234)
        pipeline = Pipeline(llm_factory=lambda name: stage_clients[name], settings=settings)
        await pipeline.execute("Create a todo app", "alice")
        assert stage_clients["intent_analysis"].calls[0]["max_tokens"] == 1234

    @pytest.mark.asyncio
    async def test_no_factory_no_settings(self):
        with pytest.raises(RuntimeError, match="No LLM factory"):
            await Pipeline().execute("x", "alice")

    def test_clients_built_from_settings(self):
        settings = Settings(_env_file=None, llm_validation="openai:gpt-4o", openai_api_key="sk-test")
        pipeline = Pipeline.from_settings(settings)
        client = pipeline._get_llm("validation")
        assert isinstance(client, OpenAIAdapter)
        assert client.model_name == "gpt-4o"
        assert pipeline._get_llm("validation") is client

    def test_describe_stages(self):
        rows = describe_stages(Pipeline(llm_factory=lambda name: None))
        assert rows[2] == {"name": "validation", "state_key": "validation", "temperature": 0.3}
