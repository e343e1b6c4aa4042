"""Questionnaire page, stamped with the models the session talks to."""

from __future__ import annotations

from functools import lru_cache
from html import escape
from importlib.resources import files

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ddqassist.assist.controller import AssistController
from ddqassist.web.dependencies import get_controller

router = APIRouter()


@lru_cache(maxsize=1)
def load_page() -> str:
    page = files("ddqassist.web").joinpath("templates").joinpath("index.html")
    return page.read_text(encoding="utf-8")


def render_page(completion_model: str, embedding_model: str) -> str:
    return (
        load_page()
        .replace("{{ completion_model }}", escape(completion_model))
        .replace("{{ embedding_model }}", escape(embedding_model))
    )


@router.get("/", response_class=HTMLResponse)
async def questionnaire_page(controller: AssistController = Depends(get_controller)) -> HTMLResponse:
    return HTMLResponse(
        content=render_page(
            controller.completion.config.model_name,
            controller.retriever.embedder.model_name,
        )
    )
