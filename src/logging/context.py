# src/logging/context.py - v1
"""Contextual logging support: attach request_id, caller_id, run_id, stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_caller_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "caller_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    caller_id: str | None = None
    run_id: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        caller_id=_caller_id.get(),
        run_id=_run_id.get(),
        stage=_stage.get(),
    )


def set_request_context(request_id: str, caller_id: str, run_id: str | None = None) -> None:
    """Set request-level context (called once per incoming request)."""
    _request_id.set(request_id)
    _caller_id.set(caller_id)
    _run_id.set(run_id)


def set_run_context(run_id: str) -> None:
    """Set the pipeline run identifier."""
    _run_id.set(run_id)


def set_stage_context(stage: str | None) -> None:
    """Set stage-level context (called per stage execution)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _caller_id.set(None)
    _run_id.set(None)
    _stage.set(None)
