# src/tracking/call_logger.py - v3
"""Completion call logging: records every call that was billed.

Records are kept in a bounded buffer; once ``max_records`` is reached the
oldest records are evicted. Committed spend is held by the Budget Guard;
eviction only drops per-call detail.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from decimal import Decimal

from nuggetwise.llm.models import LLMResponse
from nuggetwise.tracking.cost_calculator import compute_total_cost
from nuggetwise.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 10_000


class CallLogger:
    """Accumulates recent completion call records. Shared across concurrent runs."""

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        if max_records <= 0:
            raise ValueError(f"max_records must be positive, got {max_records}")
        self._records: deque[LLMCallRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    @property
    def max_records(self) -> int:
        return self._records.maxlen or DEFAULT_MAX_RECORDS

    def record(
        self,
        stage: str,
        response: LLMResponse,
        cost: Decimal,
        status: str = "success",
        run_id: str | None = None,
    ) -> LLMCallRecord:
        """Record a completion call with its computed cost."""
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            run_id=run_id,
            stage=stage,
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.total_tokens,
            latency_ms=response.latency_ms,
            status=status,
            cost=cost,
        )
        with self._lock:
            self._records.append(record)
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        """Retained calls, oldest first."""
        with self._lock:
            return list(self._records)

    def records_for_run(self, run_id: str) -> list[LLMCallRecord]:
        return [r for r in self.records if r.run_id == run_id]

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self.records)

    @property
    def total_cost(self) -> Decimal:
        """Cost of the retained calls."""
        return compute_total_cost(self.records)
