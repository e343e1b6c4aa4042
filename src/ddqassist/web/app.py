"""FastAPI application backing the questionnaire web UI.

The app serves a single local user; all state lives in one in-memory
``AssistController`` attached to ``app.state``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, List

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from ddqassist.assist.controller import AssistController
from ddqassist.errors import DocumentReadError, InvalidOptionError
from ddqassist.models import AnswerStatus
from ddqassist.questionnaire import Section, count_questions
from ddqassist.web.dependencies import get_controller
from ddqassist.web.frontend import router as frontend_router

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="DDQ Assist", version="0.1.0")
app.include_router(frontend_router)


class AssistPayload(BaseModel):
    question: str
    api_key: str | None = None


class AnswerPayload(BaseModel):
    question: str
    value: str | None = None
    status: AnswerStatus | None = None
    evidence_reference: str | None = None
    reasoning: str | None = None


def _question_or_404(controller: AssistController, number: str) -> None:
    if number not in controller.questionnaire:
        raise HTTPException(status_code=404, detail=f"Unknown question {number}")


def _section_payload(section: Section, controller: AssistController) -> dict[str, Any]:
    return {
        "title": section.title,
        "question_count": count_questions(section),
        "questions": [
            {
                "number": q.number,
                "text": q.text,
                "options": [asdict(option) for option in q.options],
                "answer": asdict(controller.answers[q.number]),
                "assist_state": controller.state_of(q.number).value,
                "busy": controller.is_busy(q.number),
            }
            for q in section.questions
        ],
        "subsections": [_section_payload(sub, controller) for sub in section.subsections],
    }


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/questionnaire")
async def get_questionnaire(controller: AssistController = Depends(get_controller)) -> dict[str, Any]:
    sections: List[dict[str, Any]] = [
        _section_payload(section, controller) for section in controller.questionnaire.sections
    ]
    return {"sections": sections, "metrics": asdict(controller.metrics())}


@app.get("/document")
async def get_document(controller: AssistController = Depends(get_controller)) -> dict[str, Any]:
    return controller.session.summary()


@app.post("/document")
async def upload_document(
    file: UploadFile = File(...),
    controller: AssistController = Depends(get_controller),
) -> dict[str, Any]:
    data = await file.read()
    filename = file.filename or "Uploaded document"
    try:
        await run_in_threadpool(controller.load_document, filename, data)
    except DocumentReadError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return controller.session.summary()


@app.delete("/document")
async def clear_document(controller: AssistController = Depends(get_controller)) -> dict[str, Any]:
    controller.clear_document()
    return controller.session.summary()


@app.post("/assist")
async def ask_ai(
    payload: AssistPayload,
    controller: AssistController = Depends(get_controller),
) -> dict[str, Any]:
    _question_or_404(controller, payload.question)
    outcome = await controller.on_ask_ai(payload.question, payload.api_key)
    body = outcome.to_dict()
    body["answer"] = asdict(controller.answers[payload.question])
    body["metrics"] = asdict(controller.metrics())
    return body


@app.post("/answers")
async def update_answer(
    payload: AnswerPayload,
    controller: AssistController = Depends(get_controller),
) -> dict[str, Any]:
    number = payload.question
    _question_or_404(controller, number)
    fields = payload.model_fields_set
    try:
        if "value" in fields:
            controller.on_answer_changed(number, payload.value)
    except InvalidOptionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if payload.status is not None:
        controller.on_status_changed(number, payload.status)
    if payload.evidence_reference is not None:
        controller.on_evidence_reference_changed(number, payload.evidence_reference)
    if payload.reasoning is not None:
        controller.on_reasoning_changed(number, payload.reasoning)
    return {
        "answer": asdict(controller.answers[number]),
        "metrics": asdict(controller.metrics()),
    }


@app.get("/metrics")
async def get_metrics(controller: AssistController = Depends(get_controller)) -> dict[str, Any]:
    return asdict(controller.metrics())


@app.get("/telemetry")
async def get_telemetry(controller: AssistController = Depends(get_controller)) -> dict[str, Any]:
    return {
        "records": [asdict(record) for record in controller.ledger.snapshot()],
        "summary": controller.ledger.summary(),
    }
