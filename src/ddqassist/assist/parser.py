"""Decision extraction from free-form model output."""

from __future__ import annotations

import json

from ddqassist.errors import InvalidOptionError, MalformedResponseError
from ddqassist.models import AnswerOption, Decision, Question


def parse_decision(raw_text: str) -> Decision:
    """Parse the outermost ``{...}`` span of ``raw_text`` as the decision object."""
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError("Empty AI response.")

    first = raw_text.find("{")
    last = raw_text.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise MalformedResponseError("AI response did not contain a JSON object.")

    try:
        payload = json.loads(raw_text[first : last + 1])
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"AI response contained invalid JSON: {exc.msg}.") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError("AI response did not contain a JSON object.")

    value = payload.get("answerValue")
    return Decision(
        can_answer=bool(payload.get("canAnswer")),
        answer_value=str(value) if value not in (None, "") else None,
        answer_label=str(payload.get("answerLabel") or ""),
        reason=str(payload.get("reason") or ""),
    )


def resolve_option(question: Question, value: str | None) -> AnswerOption:
    """Map an answer value onto the question's options or raise InvalidOptionError."""
    option = question.option(value)
    if option is None:
        raise InvalidOptionError(value)
    return option
