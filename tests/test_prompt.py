"""Tests for prompt assembly."""

from __future__ import annotations

from ddqassist.assist.prompt import NO_EVIDENCE_NOTE, TRUNCATION_NOTE, build_prompt
from ddqassist.models import AnswerOption, Document, EvidenceItem, Question

QUESTION = Question(
    number="3.5",
    text="Does your company have a complaints procedure?",
    options=(
        AnswerOption("A", "A: Yes", 2),
        AnswerOption("B", "B: In development", 1),
        AnswerOption("C", "C: No", 0),
    ),
)
EVIDENCE = [
    EvidenceItem(chunk_id=4, text="Complaints can be filed via our hotline.", score=0.8123, rank=1),
    EvidenceItem(chunk_id=1, text="The hotline is anonymous.", score=0.304, rank=2),
]


class TestBuildPrompt:
    """Test build_prompt function."""

    def test_lists_allowed_values(self) -> None:
        """Should constrain the answer to the question's option values."""
        prompt = build_prompt(QUESTION, EVIDENCE, Document("doc.txt", 10, "x"))

        assert "must be one of [A, B, C]" in prompt
        assert "A: A: Yes" in prompt
        assert "C: C: No" in prompt
        assert "Question 3.5: Does your company have a complaints procedure?" in prompt

    def test_cannot_answer_instruction(self) -> None:
        """Should require empty answer fields when the model cannot answer."""
        prompt = build_prompt(QUESTION, EVIDENCE)

        assert '"canAnswer" is false, set "answerValue" to null and "answerLabel" to an empty string' in prompt

    def test_inlines_evidence_with_rank_and_score(self) -> None:
        """Should label each excerpt with its rank and a two-decimal score."""
        prompt = build_prompt(QUESTION, EVIDENCE)

        assert '<excerpt rank="1" similarity="0.81">\nComplaints can be filed via our hotline.\n</excerpt>' in prompt
        assert '<excerpt rank="2" similarity="0.30">' in prompt
        assert prompt.index("hotline.") < prompt.index("anonymous")
        assert NO_EVIDENCE_NOTE not in prompt

    def test_no_evidence_forces_cannot_answer(self) -> None:
        """Should tell the model to decline when no evidence was found."""
        prompt = build_prompt(QUESTION, [])

        assert NO_EVIDENCE_NOTE in prompt
        assert "<evidence>" not in prompt

    def test_document_metadata(self) -> None:
        """Should name the document and flag truncation."""
        truncated = Document("report.pdf", 10, "x", truncated=True)
        complete = Document("report.pdf", 10, "x", truncated=False)

        assert "Document name: report.pdf" in build_prompt(QUESTION, EVIDENCE, truncated)
        assert TRUNCATION_NOTE in build_prompt(QUESTION, EVIDENCE, truncated)
        assert TRUNCATION_NOTE not in build_prompt(QUESTION, EVIDENCE, complete)
        assert "Document name: Uploaded document" in build_prompt(QUESTION, EVIDENCE)

    def test_is_deterministic(self) -> None:
        """Same inputs should give the same prompt."""
        document = Document("doc.txt", 10, "x")
        assert build_prompt(QUESTION, EVIDENCE, document) == build_prompt(QUESTION, EVIDENCE, document)
