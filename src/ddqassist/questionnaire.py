"""Static CSDDD questionnaire catalogue and scoring."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from importlib.resources import files
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from ddqassist.models import AnswerOption, AnswerState, Question


@dataclass(slots=True, frozen=True)
class Section:
    title: str
    questions: Tuple[Question, ...] = ()
    subsections: Tuple["Section", ...] = ()

    def iter_questions(self) -> Iterator[Question]:
        yield from self.questions
        for subsection in self.subsections:
            yield from subsection.iter_questions()


@dataclass(slots=True, frozen=True)
class QuestionnaireMetrics:
    answered: int
    total: int
    score: int


def count_questions(section: Section) -> int:
    return sum(1 for _ in section.iter_questions())


def _question_from(raw: Mapping[str, Any]) -> Question:
    options = tuple(
        AnswerOption(value=opt["value"], label=opt["label"], score=int(opt.get("score") or 0))
        for opt in raw["options"]
    )
    return Question(number=raw["number"], text=raw["text"], options=options)


def _section_from(raw: Mapping[str, Any]) -> Section:
    return Section(
        title=raw["title"],
        questions=tuple(_question_from(q) for q in raw.get("questions", ())),
        subsections=tuple(_section_from(s) for s in raw.get("subsections", ())),
    )


@dataclass(slots=True)
class Questionnaire:
    sections: Tuple[Section, ...]
    _by_number: Dict[str, Question] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for question in self.questions():
            if question.number in self._by_number:
                raise ValueError(f"Duplicate question number {question.number}")
            self._by_number[question.number] = question

    def __len__(self) -> int:
        return len(self._by_number)

    def __contains__(self, number: object) -> bool:
        return number in self._by_number

    def questions(self) -> List[Question]:
        """All questions in document order."""
        return [q for section in self.sections for q in section.iter_questions()]

    def get(self, number: str) -> Question:
        """Look up a question; raises KeyError for unknown numbers."""
        try:
            return self._by_number[number]
        except KeyError:
            raise KeyError(f"Unknown question {number!r}") from None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Questionnaire":
        return cls(sections=tuple(_section_from(s) for s in data["sections"]))


@lru_cache(maxsize=1)
def load_questionnaire() -> Questionnaire:
    """Load the bundled CSDDD questionnaire."""
    resource = files("ddqassist.data").joinpath("questionnaire.json")
    return Questionnaire.from_dict(json.loads(resource.read_text(encoding="utf-8")))


def score_answers(questionnaire: Questionnaire, answers: Mapping[str, AnswerState]) -> QuestionnaireMetrics:
    """Count answered questions and sum the scores of the selected options."""
    answered = 0
    score = 0
    for question in questionnaire.questions():
        state = answers.get(question.number)
        option = question.option(state.selected_value) if state else None
        if option is None:
            continue
        answered += 1
        score += option.score
    return QuestionnaireMetrics(answered=answered, total=len(questionnaire), score=score)
