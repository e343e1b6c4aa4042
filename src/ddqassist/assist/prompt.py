"""Prompt assembly for evidence-grounded answers."""

from __future__ import annotations

from typing import Sequence

from ddqassist.models import Document, EvidenceItem, Question

INTRO = (
    "You are assisting with a corporate sustainability due diligence assessment. "
    "Based strictly on the provided document excerpts, decide whether the document "
    "contains enough information to answer the question."
)
TRUNCATION_NOTE = (
    "Note: The document was truncated to fit the token limit. "
    "Base your decision only on the provided excerpts."
)
NO_EVIDENCE_NOTE = (
    "No passage of the document was relevant enough to this question. "
    'Without supporting evidence you must set "canAnswer" to false.'
)


def _format_evidence(evidence: Sequence[EvidenceItem]) -> str:
    blocks = [
        f'<excerpt rank="{item.rank}" similarity="{item.score:.2f}">\n{item.text}\n</excerpt>'
        for item in evidence
    ]
    return "\n".join(blocks)


def build_prompt(
    question: Question,
    evidence: Sequence[EvidenceItem],
    document: Document | None = None,
) -> str:
    """Render the prompt for one question; pure function of its inputs."""
    allowed = ", ".join(question.option_values)
    options = "\n".join(f"{option.value}: {option.label}" for option in question.options)
    name = (document.name if document else "") or "Uploaded document"

    lines = [
        INTRO,
        'Return ONLY a compact JSON object with the following keys: "canAnswer" (boolean), '
        '"answerValue" (string or null), "answerLabel" (string), and "reason" (string).',
        f'- If "canAnswer" is true, "answerValue" must be one of [{allowed}] and '
        '"answerLabel" must match the chosen option\'s label.',
        '- If "canAnswer" is false, set "answerValue" to null and "answerLabel" to an empty '
        'string. Explain briefly in "reason" why the document is insufficient.',
        f"Document name: {name}",
    ]
    if document is not None and document.truncated:
        lines.append(TRUNCATION_NOTE)
    lines.append(f"Question {question.number}: {question.text}")
    lines.append(f"Answer options:\n{options}")
    lines.append("")
    if evidence:
        lines.append(f"<evidence>\n{_format_evidence(evidence)}\n</evidence>")
    else:
        lines.append(NO_EVIDENCE_NOTE)
    return "\n".join(lines)
