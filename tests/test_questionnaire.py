"""Tests for the questionnaire catalogue and scoring."""

from __future__ import annotations

import pytest

from ddqassist.models import AnswerState
from ddqassist.questionnaire import (
    Questionnaire,
    count_questions,
    load_questionnaire,
    score_answers,
)


class TestLoadQuestionnaire:
    """Test the bundled catalogue."""

    def test_loads_all_questions(self) -> None:
        """Should expose every question of the CSDDD questionnaire."""
        questionnaire = load_questionnaire()

        assert len(questionnaire) == 59
        assert [s.title for s in questionnaire.sections][:2] == ["1. CSDDD Scope", "2. General"]

    def test_question_lookup(self) -> None:
        """Should find questions by number, including suffixed numbers."""
        questionnaire = load_questionnaire()

        question = questionnaire.get("3.1")
        assert question.option_values == ["A", "B", "C"]
        assert question.option("C").label == "C: No"  # type: ignore[union-attr]
        assert "4.2.16 (Env)" in questionnaire

    def test_unknown_question(self) -> None:
        """Should raise KeyError for unknown numbers."""
        with pytest.raises(KeyError):
            load_questionnaire().get("99.9")

    def test_section_counts(self) -> None:
        """Section counts should include subsection questions."""
        questionnaire = load_questionnaire()
        counts = [count_questions(section) for section in questionnaire.sections]

        assert sum(counts) == 59
        assert counts[0] == 1
        assert questionnaire.sections[3].subsections

    def test_document_order(self) -> None:
        """Questions should come back in document order."""
        numbers = [q.number for q in load_questionnaire().questions()]
        assert numbers[:3] == ["1.1", "2.1", "2.2"]
        assert numbers.index("3.1") < numbers.index("3.13") < numbers.index("4.1.1")


class TestQuestionnaireFromDict:
    """Test building questionnaires from raw data."""

    def test_duplicate_numbers(self) -> None:
        """Should reject duplicate question numbers."""
        raw_question = {"number": "1", "text": "Q", "options": [{"value": "A", "label": "A"}]}
        with pytest.raises(ValueError):
            Questionnaire.from_dict({"sections": [{"title": "S", "questions": [raw_question, raw_question]}]})


class TestScoreAnswers:
    """Test score_answers function."""

    def test_empty_answers(self) -> None:
        """Nothing answered scores zero."""
        questionnaire = load_questionnaire()
        metrics = score_answers(questionnaire, {})

        assert (metrics.answered, metrics.total, metrics.score) == (0, 59, 0)

    def test_sums_selected_scores(self) -> None:
        """Should count answered questions and sum option scores."""
        questionnaire = load_questionnaire()
        answers = {
            "2.1": AnswerState(selected_value="A"),
            "3.1": AnswerState(selected_value="B"),
            "1.1": AnswerState(selected_value="B"),
            "3.2.1": AnswerState(selected_value=None),
        }

        metrics = score_answers(questionnaire, answers)

        assert metrics.answered == 3
        assert metrics.score == 2 + 1 + 0
