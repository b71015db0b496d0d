# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: provider
credentials, the per-caller spending cap, request deadlines, retry policy
for the generation call and logging.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_KNOWN_PROVIDERS = ("openai", "anthropic")


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === COMPLETION PROVIDERS ===
    llm_default_provider: str = "openai"
    llm_default_model: str = "gpt-4"
    llm_max_tokens: int = 4000

    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Per-stage assignment as "provider:model" (highest priority)
    llm_intent_analysis: str = ""
    llm_pattern_selection: str = ""
    llm_validation: str = ""
    llm_requirement_synthesis: str = ""
    llm_prompt_building: str = ""

    # === GENERATION ===
    v0_api_key: str = ""
    v0_base_url: str = "https://api.v0.dev/v1"
    v0_model_id: Literal["v0-1.5-sm", "v0-1.5-md", "v0-1.5-lg"] = "v0-1.5-sm"
    v0_request_timeout_s: float = 120.0
    generation_cost_per_1k_tokens: Decimal = Decimal("0.02")
    generation_estimated_tokens: int = 1000

    # === BUDGET ===
    budget_max_cost: Decimal = Decimal("10.00")
    budget_window_hours: float = 24.0

    # === TIMEOUT ===
    request_max_time_ms: int = 300_000
    cancel_on_timeout: bool = True

    # === RETRY (generation call only) ===
    generation_max_retries: int = 3
    retry_base_delay_s: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_max_delay_s: float = 30.0
    retry_jitter: bool = True

    # === TRACKING ===
    tracking_max_call_records: int = 10_000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("generation_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("generation_max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.budget_max_cost <= 0:
            errors.append("BUDGET_MAX_COST must be > 0")

        if self.budget_window_hours <= 0:
            errors.append("BUDGET_WINDOW_HOURS must be > 0")

        if self.request_max_time_ms <= 0:
            errors.append("REQUEST_MAX_TIME_MS must be > 0")

        if self.tracking_max_call_records <= 0:
            errors.append("TRACKING_MAX_CALL_RECORDS must be > 0")

        if self.llm_default_provider not in _KNOWN_PROVIDERS:
            errors.append(
                f"LLM_DEFAULT_PROVIDER must be one of {', '.join(_KNOWN_PROVIDERS)}"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def budget_window_seconds(self) -> float:
        """Spend window length in seconds."""
        return self.budget_window_hours * 3600.0


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-process config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
