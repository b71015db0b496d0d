# tests/unit/config/test_unit_settings.py - v1
"""Tests for config/settings.py - typed Settings and validation rules."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from nuggetwise.config.settings import ConfigurationError, Settings, load_settings
from nuggetwise.config.stages import STAGE_ORDER, STAGE_REGISTRY, STAGE_TEMPERATURES


class TestSettingsDefaults:
    def test_default_provider(self):
        s = Settings(_env_file=None)
        assert s.llm_default_provider == "openai"
        assert s.llm_default_model == "gpt-4"

    def test_default_budget(self):
        s = Settings(_env_file=None)
        assert s.budget_max_cost == Decimal("10.00")
        assert s.budget_window_seconds == 24 * 3600

    def test_default_timeout_and_retry(self):
        s = Settings(_env_file=None)
        assert s.request_max_time_ms == 300_000
        assert s.cancel_on_timeout is True
        assert s.generation_max_retries == 3


class TestSettingsValidation:
    def test_non_positive_budget(self):
        with pytest.raises(ConfigurationError, match="BUDGET_MAX_COST"):
            Settings(_env_file=None, budget_max_cost=Decimal("0"))

    def test_non_positive_window(self):
        with pytest.raises(ConfigurationError, match="BUDGET_WINDOW_HOURS"):
            Settings(_env_file=None, budget_window_hours=0)

    def test_non_positive_max_time(self):
        with pytest.raises(ConfigurationError, match="REQUEST_MAX_TIME_MS"):
            Settings(_env_file=None, request_max_time_ms=-1)

    def test_non_positive_call_record_bound(self):
        with pytest.raises(ConfigurationError, match="TRACKING_MAX_CALL_RECORDS"):
            Settings(_env_file=None, tracking_max_call_records=0)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="LLM_DEFAULT_PROVIDER"):
            Settings(_env_file=None, llm_default_provider="ollama")

    def test_negative_retries(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, generation_max_retries=-1)


class TestEnvLoading:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BUDGET_MAX_COST", "2.50")
        monkeypatch.setenv("LLM_VALIDATION", "anthropic:claude-sonnet-4-20250514")
        s = Settings(_env_file=None)
        assert s.budget_max_cost == Decimal("2.50")
        assert s.llm_validation == "anthropic:claude-sonnet-4-20250514"

    def test_load_settings_overrides(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        s = load_settings(request_max_time_ms=100)
        assert s.request_max_time_ms == 100


class TestStageConfig:
    def test_registry_matches_order(self):
        assert len(STAGE_REGISTRY) == len(STAGE_ORDER) == 5
        assert STAGE_ORDER[0] == "intent_analysis"
        assert STAGE_ORDER[-1] == "prompt_building"

    def test_every_stage_has_temperature(self):
        assert set(STAGE_TEMPERATURES) == set(STAGE_ORDER)
