"""Headless command interface for the questionnaire and its AI assist.

The controller owns the per-question answer state and runs one "Ask AI"
invocation through::

    idle -> evidence_gathering -> awaiting_completion -> parsing -> applied
                                                              \\-> failed

Every failure is scoped to the invocation that raised it. Each invocation
gets a token; only the newest invocation for a question may commit.
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List

import httpx

from ddqassist.assist.completion import CompletionClient, CompletionConfig, CompletionResult
from ddqassist.assist.parser import parse_decision, resolve_option
from ddqassist.assist.prompt import build_prompt
from ddqassist.config import AppConfig
from ddqassist.embedding.client import EmbeddingClient, EmbeddingConfig
from ddqassist.errors import (
    AssistError,
    DocumentReadError,
    EmptyDocumentError,
    InvalidOptionError,
    MissingCredentialError,
)
from ddqassist.index.retrieval import Retriever
from ddqassist.index.session import SessionStore
from ddqassist.ingestion.loader import build_document, load_upload
from ddqassist.models import AnswerState, AnswerStatus, Decision, Document, EvidenceItem
from ddqassist.questionnaire import (
    Questionnaire,
    QuestionnaireMetrics,
    load_questionnaire,
    score_answers,
)
from ddqassist.telemetry.ledger import TelemetryLedger, preview

LOGGER = logging.getLogger(__name__)

NO_ANSWER_MESSAGE = "AI could not determine an answer from the document."
APPLIED_MESSAGE = "Answer inserted by AI."


class AssistState(str, Enum):
    IDLE = "idle"
    EVIDENCE_GATHERING = "evidence_gathering"
    AWAITING_COMPLETION = "awaiting_completion"
    PARSING = "parsing"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(slots=True)
class AssistOutcome:
    question: str
    state: AssistState
    variant: str
    message: str
    decision: Decision | None = None
    evidence: List[EvidenceItem] = field(default_factory=list)
    error: AssistError | None = None
    discarded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "state": self.state.value,
            "variant": self.variant,
            "message": self.message,
            "decision": asdict(self.decision) if self.decision else None,
            "evidence": [asdict(item) for item in self.evidence],
            "error": self.error.__class__.__name__ if self.error else None,
            "discarded": self.discarded,
        }


class AssistController:
    """Command/dispatch surface used by the web UI, the CLI and tests."""

    def __init__(
        self,
        questionnaire: Questionnaire,
        session: SessionStore,
        retriever: Retriever,
        completion: CompletionClient,
        ledger: TelemetryLedger,
    ) -> None:
        self.questionnaire = questionnaire
        self.session = session
        self.retriever = retriever
        self.completion = completion
        self.ledger = ledger
        self.answers: Dict[str, AnswerState] = {
            question.number: AnswerState() for question in questionnaire.questions()
        }
        self._states: Dict[str, AssistState] = {}
        self._tokens: Dict[str, int] = {}
        self._token_counter = itertools.count(1)
        self._in_flight: Counter[str] = Counter()

    @classmethod
    def from_config(
        cls,
        config: AppConfig | None = None,
        *,
        questionnaire: Questionnaire | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "AssistController":
        """Wire a controller with fresh session and telemetry stores."""
        config = config or AppConfig()
        ledger = TelemetryLedger(config.telemetry_capacity)
        session = SessionStore(config)
        embedder = EmbeddingClient(
            ledger,
            EmbeddingConfig(
                model_name=config.embedding_model,
                endpoint=config.embedding_endpoint,
                batch_size=config.embedding_batch_size,
                timeout=config.request_timeout,
            ),
            transport=transport,
        )
        retriever = Retriever(
            session,
            embedder,
            max_chunks=config.max_context_chunks,
            min_similarity=config.min_similarity,
        )
        completion = CompletionClient(
            CompletionConfig(
                model_name=config.completion_model,
                endpoint=config.completion_endpoint,
                temperature=config.temperature,
                timeout=config.request_timeout,
            ),
            transport=transport,
        )
        return cls(questionnaire or load_questionnaire(), session, retriever, completion, ledger)

    # Document commands

    def load_document(self, filename: str, data: bytes) -> Document:
        """Replace the session document with an uploaded file."""
        try:
            document = load_upload(filename, data, max_chars=self.session.config.max_document_chars)
        except DocumentReadError:
            LOGGER.error("Failed to read document %s", filename)
            self.session.clear()
            raise
        self.session.replace(document)
        return document

    def load_text(self, name: str, size: int, raw_text: str) -> Document:
        """Replace the session document with already extracted text."""
        document = build_document(name, size, raw_text, max_chars=self.session.config.max_document_chars)
        self.session.replace(document)
        return document

    def clear_document(self) -> None:
        self.session.clear()

    # Answer commands

    def answer(self, number: str) -> AnswerState:
        self.questionnaire.get(number)
        return self.answers[number]

    def on_answer_changed(self, number: str, value: str | None) -> AnswerState:
        question = self.questionnaire.get(number)
        state = self.answers[number]
        if value in (None, ""):
            state.selected_value = None
        else:
            state.selected_value = resolve_option(question, value).value
        return state

    def on_status_changed(self, number: str, status: AnswerStatus | str) -> AnswerState:
        state = self.answer(number)
        state.status = AnswerStatus(status)
        return state

    def on_evidence_reference_changed(self, number: str, reference: str) -> AnswerState:
        state = self.answer(number)
        state.evidence_reference = reference
        return state

    def on_reasoning_changed(self, number: str, note: str) -> AnswerState:
        state = self.answer(number)
        state.reasoning_note = note
        return state

    def metrics(self) -> QuestionnaireMetrics:
        return score_answers(self.questionnaire, self.answers)

    def state_of(self, number: str) -> AssistState:
        return self._states.get(number, AssistState.IDLE)

    def is_busy(self, number: str) -> bool:
        return self._in_flight[number] > 0

    # AI assist

    async def on_ask_ai(self, number: str, api_key: str | None) -> AssistOutcome:
        """Gather evidence, ask the model and apply its decision to ``number``.

        Raises KeyError for unknown question numbers; every other failure is
        returned as a ``failed`` outcome.
        """
        question = self.questionnaire.get(number)
        api_key = (api_key or "").strip()
        if not api_key:
            return self._fail(number, MissingCredentialError())
        if not self.session.has_content:
            return self._fail(number, EmptyDocumentError())

        token = next(self._token_counter)
        self._tokens[number] = token
        self._in_flight[number] += 1
        try:
            self._set_state(number, token, AssistState.EVIDENCE_GATHERING)
            try:
                evidence = await self.retriever.gather_evidence(question, api_key=api_key)
            except AssistError as exc:
                return self._fail(number, exc, token)

            self._set_state(number, token, AssistState.AWAITING_COMPLETION)
            body = self.completion.encode(build_prompt(question, evidence, self.session.document))
            record_id = self.ledger.record(
                "completion",
                subtype="answer",
                description=f"Answer question {number}",
                question_ref=number,
                context_count=len(evidence),
                payload_size=len(body),
            )
            result: CompletionResult | None = None
            try:
                result = await self.completion.complete(body, api_key=api_key)
                self._set_state(number, token, AssistState.PARSING)
                decision = parse_decision(result.text)
                option = None
                if decision.can_answer and decision.answer_value:
                    option = resolve_option(question, decision.answer_value)
            except AssistError as exc:
                extra: dict[str, Any] = {}
                if result is not None:
                    extra = {
                        "http_status": result.http_status,
                        "token_usage": result.usage,
                        "response_preview": preview(result.text),
                    }
                self.ledger.fail(record_id, exc, **extra)
                return self._fail(number, exc, token, evidence=evidence)

            self.ledger.succeed(
                record_id,
                http_status=result.http_status,
                token_usage=result.usage,
                response_preview=preview(result.text),
                decision=option.label if option else "cannot answer",
            )
            if self._tokens.get(number) != token:
                LOGGER.info("Discarding superseded result for question %s", number)
                return AssistOutcome(
                    number,
                    AssistState.APPLIED,
                    "info",
                    "Superseded by a newer request.",
                    decision=decision,
                    evidence=evidence,
                    discarded=True,
                )
            return self._apply(number, token, decision, evidence, applied=option is not None)
        finally:
            self._in_flight[number] -= 1

    def _apply(
        self,
        number: str,
        token: int,
        decision: Decision,
        evidence: List[EvidenceItem],
        *,
        applied: bool,
    ) -> AssistOutcome:
        state = self.answers[number]
        if applied:
            state.selected_value = decision.answer_value
            state.status = AnswerStatus.ANSWERED_BY_AI
            variant, message = "success", APPLIED_MESSAGE
        else:
            state.selected_value = None
            state.status = AnswerStatus.OPEN
            variant, message = "info", decision.reason or NO_ANSWER_MESSAGE
        if decision.reason:
            state.reasoning_note = decision.reason
        document = self.session.document
        if document is not None and document.name and not state.evidence_reference:
            state.evidence_reference = document.name

        self._set_state(number, token, AssistState.APPLIED)
        return AssistOutcome(number, AssistState.APPLIED, variant, message, decision=decision, evidence=evidence)

    def _set_state(self, number: str, token: int, state: AssistState) -> None:
        if self._tokens.get(number) == token:
            self._states[number] = state

    def _fail(
        self,
        number: str,
        error: AssistError,
        token: int | None = None,
        *,
        evidence: List[EvidenceItem] | None = None,
    ) -> AssistOutcome:
        LOGGER.warning("AI assist for question %s failed: %s", number, error.__class__.__name__)
        if token is None or self._tokens.get(number) == token:
            self._states[number] = AssistState.FAILED
        if isinstance(error, InvalidOptionError):
            LOGGER.info("Rejected answer value %r for question %s", error.value, number)
        return AssistOutcome(
            number,
            AssistState.FAILED,
            "error",
            str(error) or "AI request failed.",
            evidence=evidence or [],
            error=error,
        )
