"""In-memory ledger of outbound API calls.

Each call is recorded as ``pending`` when it starts and finalized exactly once
as ``success`` or ``error``. The ledger keeps the most recent ``capacity``
records and is independent of the document session.
"""

from __future__ import annotations

import itertools
import logging
import math
import time
from collections import deque
from dataclasses import replace
from typing import Any, Callable, Deque, Dict, List, Mapping

from ddqassist.config import TELEMETRY_CAPACITY
from ddqassist.models import CallStatus, TelemetryRecord, TokenUsage

LOGGER = logging.getLogger(__name__)

PREVIEW_CHARS = 280

_INPUT_KEYS = ("input_tokens", "prompt_tokens", "inputTokens", "promptTokens")
_OUTPUT_KEYS = ("output_tokens", "completion_tokens", "outputTokens", "completionTokens")
_TOTAL_KEYS = ("total_tokens", "totalTokens")


def _finite(value: Any) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


def _first_number(usage: Mapping[str, Any], keys: tuple[str, ...]) -> int | float | None:
    for key in keys:
        value = _finite(usage.get(key))
        if value is not None:
            return value
    return None


def normalize_token_usage(usage: Mapping[str, Any] | None) -> TokenUsage:
    """Reconcile the provider's token field names into a TokenUsage.

    Missing or non-finite figures stay None; a missing total is derived from
    whichever of input/output are present.
    """
    if not isinstance(usage, Mapping):
        return TokenUsage()
    input_tokens = _first_number(usage, _INPUT_KEYS)
    output_tokens = _first_number(usage, _OUTPUT_KEYS)
    total = _first_number(usage, _TOTAL_KEYS)
    if total is None and (input_tokens is not None or output_tokens is not None):
        total = (input_tokens or 0) + (output_tokens or 0)
    return TokenUsage(input=input_tokens, output=output_tokens, total=total)


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 1] + "…"


class TelemetryLedger:
    """Bounded, append-only log of API calls."""

    def __init__(
        self,
        capacity: int = TELEMETRY_CAPACITY,
        *,
        clock: Callable[[], float] = time.time,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._clock = clock
        self._timer = timer
        self._ids = itertools.count(1)
        self._records: Deque[TelemetryRecord] = deque()
        self._by_id: Dict[int, TelemetryRecord] = {}
        self._started: Dict[int, float] = {}

    def __len__(self) -> int:
        return len(self._records)

    def record(self, call_type: str, **fields: Any) -> int:
        """Append a pending record and return its id."""
        record_id = next(self._ids)
        entry = TelemetryRecord(id=record_id, timestamp=self._clock(), call_type=call_type, **fields)
        self._records.append(entry)
        self._by_id[record_id] = entry
        self._started[record_id] = self._timer()
        while len(self._records) > self.capacity:
            evicted = self._records.popleft()
            self._by_id.pop(evicted.id, None)
            self._started.pop(evicted.id, None)
        return record_id

    def update(self, record_id: int, **fields: Any) -> TelemetryRecord | None:
        """Merge ``fields`` into a record.

        A terminal status may be applied only once; it also stamps
        ``duration_ms``. Returns None when the record was already evicted.
        """
        entry = self._by_id.get(record_id)
        if entry is None:
            LOGGER.debug("Telemetry record %s no longer retained", record_id)
            return None

        status = fields.get("status")
        if status is not None:
            status = CallStatus(status)
            fields["status"] = status
            if entry.status is not CallStatus.PENDING:
                raise ValueError(f"Telemetry record {record_id} is already finalized")
            if status is not CallStatus.PENDING:
                started = self._started.pop(record_id, self._timer())
                fields.setdefault("duration_ms", round((self._timer() - started) * 1000, 1))

        for name, value in fields.items():
            setattr(entry, name, value)
        if status is not None and status is not CallStatus.PENDING:
            LOGGER.info(
                "%s/%s call %s finished: %s in %.1f ms",
                entry.call_type,
                entry.subtype,
                record_id,
                status.value,
                entry.duration_ms or 0.0,
            )
        return entry

    def succeed(self, record_id: int, **fields: Any) -> TelemetryRecord | None:
        return self.update(record_id, status=CallStatus.SUCCESS, **fields)

    def fail(self, record_id: int, error: BaseException | str, **fields: Any) -> TelemetryRecord | None:
        message = str(error) or error.__class__.__name__
        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            fields.setdefault("http_status", status_code)
        return self.update(record_id, status=CallStatus.ERROR, error_message=message, **fields)

    def get(self, record_id: int) -> TelemetryRecord | None:
        return self._by_id.get(record_id)

    def snapshot(self) -> List[TelemetryRecord]:
        """Copies of the retained records, oldest first."""
        return [replace(entry) for entry in self._records]

    def summary(self) -> dict[str, Any]:
        counts = {status.value: 0 for status in CallStatus}
        totals: dict[str, int | float] = {"input": 0, "output": 0, "total": 0}
        with_usage = 0
        for entry in self._records:
            counts[entry.status.value] += 1
            usage = entry.token_usage
            if not usage.reported:
                continue
            with_usage += 1
            for name in totals:
                value = getattr(usage, name)
                if value is not None:
                    totals[name] += value
        return {
            "calls": len(self._records),
            "by_status": counts,
            "records_with_usage": with_usage,
            "tokens": totals if with_usage else {"input": None, "output": None, "total": None},
        }

    def clear(self) -> None:
        self._records.clear()
        self._by_id.clear()
        self._started.clear()
