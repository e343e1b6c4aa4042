"""Core ddqassist data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


@dataclass(slots=True)
class Document:
    """Normalized evidence document held by the session."""

    name: str
    size: int
    content: str
    truncated: bool = False


@dataclass(slots=True, frozen=True)
class Chunk:
    """Contiguous slice of document text used as a retrieval unit."""

    id: int
    text: str
    start_offset: int
    end_offset: int


@dataclass(slots=True, frozen=True)
class EvidenceItem:
    chunk_id: int
    text: str
    score: float
    rank: int


@dataclass(slots=True, frozen=True)
class AnswerOption:
    value: str
    label: str
    score: int = 0


@dataclass(slots=True, frozen=True)
class Question:
    number: str
    text: str
    options: Tuple[AnswerOption, ...]

    def option(self, value: str | None) -> AnswerOption | None:
        """Return the option matching ``value`` or None."""
        for option in self.options:
            if option.value == value:
                return option
        return None

    @property
    def option_values(self) -> list[str]:
        return [option.value for option in self.options]


class AnswerStatus(str, Enum):
    OPEN = "Open"
    ANSWERED_BY_AI = "Answered by AI"
    CHECKED = "Checked"


@dataclass(slots=True)
class AnswerState:
    """Per-question answer owned by the questionnaire UI."""

    selected_value: str | None = None
    status: AnswerStatus = AnswerStatus.OPEN
    evidence_reference: str = ""
    reasoning_note: str = ""


@dataclass(slots=True, frozen=True)
class Decision:
    can_answer: bool
    answer_value: str | None
    answer_label: str
    reason: str


@dataclass(slots=True, frozen=True)
class TokenUsage:
    """Token counts; None means the provider did not report the figure."""

    input: int | float | None = None
    output: int | float | None = None
    total: int | float | None = None

    @property
    def reported(self) -> bool:
        return any(value is not None for value in (self.input, self.output, self.total))


class CallStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True)
class TelemetryRecord:
    """One outbound API call and its outcome."""

    id: int
    timestamp: float
    call_type: str
    subtype: str = ""
    description: str = ""
    question_ref: str | None = None
    context_count: int = 0
    payload_size: int = 0
    status: CallStatus = CallStatus.PENDING
    http_status: int | None = None
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    response_preview: str = ""
    error_message: str = ""
    duration_ms: float | None = None
    decision: str = ""
